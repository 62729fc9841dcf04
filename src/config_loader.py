import os
import yaml


DEFAULTS = {
    "sub_depts": [85, 86],
    "scan_interval_seconds": 10,
    "day_boundary_hour": 2,
    "request_timeout_seconds": 30,
    "apex_base_url": "https://siteadminsso.capstonelogistics.com/api/",
    "load_entry_base_url": "https://apexloadentryapi.capstonelogistics.com/api/",
}


def _default_path() -> str:
    return os.getenv(
        "PALLET_GUARD_CONFIG",
        os.path.join(os.path.dirname(os.path.dirname(__file__)), "config", "pallet_guard.yml"),
    )


def load_guard_config(path: str = None) -> dict:
    path = path or _default_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return dict(DEFAULTS)

    # shallow merge defaults
    merged = dict(DEFAULTS)
    merged.update({k: v for k, v in cfg.items() if v is not None})
    merged["sub_depts"] = [int(s) for s in merged["sub_depts"]]
    return merged
