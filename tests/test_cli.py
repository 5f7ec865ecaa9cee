import http.client
import io
import json
import logging
import os

import pytest
import structlog

import dql.cli as cli
from dql.datadog import DatadogClient, MetricQueryError


def _fixture(name):
    return os.path.join(os.path.dirname(__file__), "fixtures", name)


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("DQL_CONFIG", "DD_CLIENT_API_KEY", "DD_CLIENT_APP_KEY", "DD_SITE", "DQL_LOG_LEVEL",
                 "DQL_LOG_FORMAT", "DQL_METRIC_ORDER"):
        monkeypatch.delenv(name, raising=False)
    yield
    # lint_cmd binds a handler to the captured stdout of the current test
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()


class FakeClient:
    results = {}

    @classmethod
    def from_config(cls, config):
        return cls()

    def fetch_metric(self, query):
        result = self.results.get(query, 1.0)
        if isinstance(result, Exception):
            raise result
        return result


def test_analyze_prints_json(capsys):
    assert cli.run(["analyze", "default_zero(avg:a{*}) + sum:b{*}"]) == cli.EXIT_OK
    payload = json.loads(capsys.readouterr().out)
    assert payload["is_composite"] is True
    assert [m["clean_text"] for m in payload["metrics"]] == ["avg:a{*}", "sum:b{*}"]


def test_offline_lint_writes_report(tmp_path):
    report = tmp_path / "out" / "report.json"
    code = cli.run(["lint", "--offline", "--report", str(report), _fixture("datadogmetric-mixed.yaml")])
    assert code == cli.EXIT_OK
    payload = json.loads(report.read_text())
    assert payload["files"] == 1
    assert payload["failures"] == 0
    assert "generated_utc" in payload
    assert len(payload["results"][0]["analysis"]["metrics"]) == 3


def test_exit_status_is_failure_count(tmp_path):
    code = cli.run([
        "lint", "--offline", "--log-level", "ERROR",
        _fixture("invalid-yaml.yaml"), _fixture("broken-yaml.yaml"), _fixture("datadogmetric-simple.yaml"),
    ])
    assert code == 2


def test_directory_with_pattern(tmp_path):
    manifests = tmp_path / "manifests"
    manifests.mkdir()
    (manifests / "datadogmetric-bad.yaml").write_text("Hello, this is not a manifest\n")
    (manifests / "deployment.yaml").write_text("Hello, this is not a manifest\n")
    assert cli.run(["lint", "--offline", "--pattern", "datadogmetric-*", str(manifests)]) == 1


def test_no_files_is_usage_error(tmp_path, capsys):
    empty = tmp_path / "empty"
    empty.mkdir()
    assert cli.run(["lint", "--offline", str(empty)]) == cli.EXIT_USAGE
    assert "no manifest files" in capsys.readouterr().err


def test_online_lint_requires_keys(capsys):
    assert cli.run(["lint", _fixture("datadogmetric-simple.yaml")]) == cli.EXIT_CONFIG
    assert "DD_CLIENT_API_KEY" in capsys.readouterr().err


def test_online_lint_counts_metric_failures(monkeypatch):
    monkeypatch.setenv("DD_CLIENT_API_KEY", "api")
    monkeypatch.setenv("DD_CLIENT_APP_KEY", "app")
    monkeypatch.setattr(FakeClient, "results", {
        "sum:another.metric{env:prod}": MetricQueryError("HTTP 400: unknown metric", status=400),
        "count:third.metric{*}": MetricQueryError("HTTP 400: unknown metric", status=400),
    })
    monkeypatch.setattr(cli, "DatadogClient", FakeClient)
    assert cli.run(["lint", _fixture("datadogmetric-mixed.yaml"), _fixture("datadogmetric-simple.yaml")]) == 2


def test_invalid_config_is_config_error(tmp_path, capsys):
    config = tmp_path / "lint.yaml"
    config.write_text("metric_order: random\n")
    code = cli.run(["lint", "--offline", "--config", str(config), _fixture("datadogmetric-simple.yaml")])
    assert code == cli.EXIT_CONFIG
    assert "invalid config" in capsys.readouterr().err


def test_exit_status_is_capped(monkeypatch):
    monkeypatch.setattr(cli, "collect_manifest_files", lambda paths, pattern: ["x.yaml"])

    class Summary:
        results = []
        failures = 300
        warnings = 0

    monkeypatch.setattr(cli, "lint_files", lambda *a, **k: Summary())
    assert cli.run(["lint", "--offline", "x.yaml"]) == cli.MAX_EXIT_STATUS


class TruncatedResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def read(self, *args):
        raise http.client.IncompleteRead(b'{"series": [', 100)


def test_truncated_backend_responses_are_counted_per_file(monkeypatch):
    monkeypatch.setenv("DD_CLIENT_API_KEY", "api")
    monkeypatch.setenv("DD_CLIENT_APP_KEY", "app")
    client = DatadogClient("api", "app", opener=lambda req, timeout=None: TruncatedResponse(), sleep=lambda _s: None)
    monkeypatch.setattr(cli.DatadogClient, "from_config", classmethod(lambda cls, config: client))
    code = cli.run(["lint", _fixture("datadogmetric-simple.yaml"), _fixture("datadogmetric-mixed.yaml")])
    assert code == 2


def test_unexpected_error_while_linting_is_not_a_config_error(monkeypatch, capsys):
    monkeypatch.setenv("DD_CLIENT_API_KEY", "api")
    monkeypatch.setenv("DD_CLIENT_APP_KEY", "app")
    monkeypatch.setattr(FakeClient, "results", {"avg:system.cpu.user{*}": ValueError("bad point")})
    monkeypatch.setattr(cli, "DatadogClient", FakeClient)
    assert cli.run(["lint", _fixture("datadogmetric-simple.yaml")]) == cli.EXIT_UNKNOWN
    err = capsys.readouterr().err
    assert "bad point" in err
    assert "invalid config" not in err


def test_lint_help_explains_exit_status(capsys):
    with pytest.raises(SystemExit):
        cli.run(["lint", "--help"])
    assert "number of failed checks" in " ".join(capsys.readouterr().out.split())
