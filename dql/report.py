import json
import os
from datetime import datetime, timezone


def write_json_report(summary, path):
    """Write the lint summary (per-file analysis and check outcomes) as JSON."""
    payload = {
        "generated_utc": datetime.now(timezone.utc).isoformat(),
        **summary.to_dict(),
    }
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        json.dump(payload, f, indent=2)
    return path
