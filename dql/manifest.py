"""
DatadogMetric manifests: load `spec.query` from YAML and expand CLI paths into manifest files.
"""
import fnmatch
import os

import yaml

MANIFEST_EXTENSIONS = (".yaml", ".yml")


class ManifestError(Exception):
    def __init__(self, message, path):
        super().__init__(message)
        self.path = path


def extract_query(path):
    """
    Return spec.query from the manifest at path.
    A valid manifest with no spec.query returns "" (not an error; callers skip it).
    """
    try:
        with open(path, "r") as f:
            data = f.read()
    except OSError as exc:
        raise ManifestError(f"Failed to read file: {path}: {exc.strerror or exc}", path) from exc
    try:
        payload = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ManifestError(f"Failed to unmarshal yaml: {path}: {exc}", path) from exc
    if payload is None:
        return ""
    if not isinstance(payload, dict):
        raise ManifestError(
            f"Failed to unmarshal yaml: {path}: expected a mapping, got {type(payload).__name__}", path
        )
    spec = payload.get("spec") or {}
    if not isinstance(spec, dict):
        raise ManifestError(f"Failed to unmarshal yaml: {path}: spec must be a mapping", path)
    query = spec.get("query")
    if query is None:
        return ""
    if not isinstance(query, str):
        raise ManifestError(f"Failed to unmarshal yaml: {path}: spec.query must be a string", path)
    return query


def collect_manifest_files(paths, pattern="*"):
    """
    Expand directories (recursively) into sorted manifest files matching pattern.
    Explicit file paths are kept as given, even when missing, so the read error is reported.
    """
    files = []
    for path in paths:
        if not os.path.isdir(path):
            files.append(path)
            continue
        found = []
        for root, dirs, names in os.walk(path):
            dirs.sort()
            for name in names:
                if name.endswith(MANIFEST_EXTENSIONS) and fnmatch.fnmatch(name, pattern):
                    found.append(os.path.join(root, name))
        files.extend(sorted(found))
    return files
