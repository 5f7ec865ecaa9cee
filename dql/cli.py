import argparse
import json
import sys

from dql.config import load_linter_config
from dql.datadog import DatadogClient
from dql.linter import lint_files
from dql.log import configure_logging, get_logger
from dql.manifest import collect_manifest_files
from dql.report import write_json_report
from dql_core.analysis import DEFAULT_WRAPPER, METRIC_ORDERS, ORDER_POSITION, analyze_query


class DQLError(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


EXIT_OK = 0
EXIT_UNKNOWN = 1
EXIT_USAGE = 2
EXIT_CONFIG = 3

# Exit status is the failure count; statuses wrap at 256.
MAX_EXIT_STATUS = 255


def lint_cmd(args):
    try:
        config = load_linter_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        raise DQLError(f"invalid config: {exc}", EXIT_CONFIG) from exc
    configure_logging(args.log_level or config["log_level"], config["log_format"])
    log = get_logger("dql.cli")

    files = collect_manifest_files(args.paths, args.pattern or config["pattern"])
    if not files:
        log.error("Please provide a list of files to process")
        raise DQLError("no manifest files to process", EXIT_USAGE)

    fetcher = None
    if not args.offline:
        if not config.get("api_key") or not config.get("app_key"):
            raise DQLError("DD_CLIENT_API_KEY and DD_CLIENT_APP_KEY must be set (or use --offline)", EXIT_CONFIG)
        fetcher = DatadogClient.from_config(config)

    summary = lint_files(files, fetcher, wrapper=config["wrapper"], order=config["metric_order"])
    if args.report:
        write_json_report(summary, args.report)
    log.info("Lint finished", files=len(summary.results), failures=summary.failures, warnings=summary.warnings)
    return min(summary.failures, MAX_EXIT_STATUS)


def analyze_cmd(args):
    analysis = analyze_query(args.query, wrapper=args.wrapper, order=args.order)
    print(json.dumps(analysis.to_dict(), indent=2))
    return EXIT_OK


def build_parser():
    parser = argparse.ArgumentParser(
        prog="dql",
        description="Lint Datadog metric queries in DatadogMetric manifests",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    lint_parser = subparsers.add_parser(
        "lint",
        help="validate spec.query of each manifest against the Datadog API",
        epilog=(
            "exit status: the number of failed checks (capped at 255). A run with 2 or 3 failures "
            "exits with the same status as a usage error (2) or a config error (3); use --report "
            "for an unambiguous summary."
        ),
    )
    lint_parser.add_argument("paths", nargs="*", help="manifest files or directories")
    lint_parser.add_argument("--config", default=None, help="linter config YAML (default: $DQL_CONFIG or ./.dql.yaml)")
    lint_parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARN or ERROR")
    lint_parser.add_argument("--pattern", default=None, help="glob for manifest names inside directories, e.g. 'datadogmetric-*'")
    lint_parser.add_argument("--offline", action="store_true", help="analyze queries without calling the API")
    lint_parser.add_argument("--report", default=None, help="write a JSON summary to this path")

    analyze_parser = subparsers.add_parser("analyze", help="print the analysis of one query as JSON")
    analyze_parser.add_argument("query")
    analyze_parser.add_argument("--wrapper", default=DEFAULT_WRAPPER)
    analyze_parser.add_argument("--order", default=ORDER_POSITION, choices=METRIC_ORDERS)
    return parser


def run(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "lint":
            return lint_cmd(args)
        if args.command == "analyze":
            return analyze_cmd(args)
    except DQLError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.code
    except Exception as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_UNKNOWN
    return EXIT_OK


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
