from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from .database import get_active_policy, upsert_policy
from .policy_defaults import BASELINE_POLICY, DEFAULT_MAX_CONSECUTIVE_DAYS, DEFAULT_RANGE_DAYS

logger = logging.getLogger(__name__)


def build_default_policy() -> Dict[str, Any]:
    """Return a deepcopy so callers can mutate the policy safely."""
    return copy.deepcopy(BASELINE_POLICY)


def ensure_default_policy(session_factory) -> None:
    """Seed the baseline policy once so the service has a window cap to use."""
    with session_factory() as session:
        if get_active_policy(session):
            return
        spec = build_default_policy()
        name = spec.get("name", "Default Reconciliation")
        params = {key: value for key, value in spec.items() if key != "name"}
        upsert_policy(session, name, params, edited_by="system")


def load_active_policy(conn) -> Dict:
    """Return the active policy payload merged over the baseline."""
    if conn is None:
        return _normalize_policy({})
    if callable(conn):
        with conn() as session:
            policy = get_active_policy(session)
            return _normalize_policy(policy.params_dict() if policy else {})
    policy = get_active_policy(conn)
    return _normalize_policy(policy.params_dict() if policy else {})


def _deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_update(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _non_negative_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 0 else default


def _normalize_policy(policy: Dict) -> Dict:
    if not isinstance(policy, dict):
        policy = {}
    normalized = _deep_update(build_default_policy(), policy)
    window = normalized.get("window")
    if not isinstance(window, dict):
        window = copy.deepcopy(BASELINE_POLICY["window"])
        normalized["window"] = window
    window["max_consecutive_days"] = _non_negative_int(
        window.get("max_consecutive_days"), DEFAULT_MAX_CONSECUTIVE_DAYS
    )
    window["default_range_days"] = _non_negative_int(window.get("default_range_days"), DEFAULT_RANGE_DAYS)
    if not isinstance(normalized.get("feeds"), dict):
        normalized["feeds"] = copy.deepcopy(BASELINE_POLICY["feeds"])
    return normalized


def window_settings(policy: Dict) -> Dict[str, int]:
    window = _normalize_policy(policy).get("window", {})
    return {
        "max_consecutive_days": window["max_consecutive_days"],
        "default_range_days": window["default_range_days"],
    }


def feed_settings(policy: Dict) -> Dict[str, Any]:
    feeds = _normalize_policy(policy)["feeds"]
    fields = feeds.get("fields") if isinstance(feeds.get("fields"), dict) else {}
    defaults = BASELINE_POLICY["feeds"]["fields"]
    return {
        "plan_file": feeds.get("plan_file") or BASELINE_POLICY["feeds"]["plan_file"],
        "fact_file": feeds.get("fact_file") or BASELINE_POLICY["feeds"]["fact_file"],
        "fields": {
            "plan": _field_aliases(fields.get("plan"), defaults["plan"]),
            "fact": _field_aliases(fields.get("fact"), defaults["fact"]),
        },
    }


def _field_aliases(value: Any, defaults: Dict[str, List[str]]) -> Dict[str, List[str]]:
    aliases = copy.deepcopy(defaults)
    if not isinstance(value, dict):
        return aliases
    for name, keys in value.items():
        if name not in aliases:
            continue
        if isinstance(keys, str):
            keys = [keys]
        if isinstance(keys, list) and keys:
            aliases[name] = [str(key) for key in keys]
    return aliases


def export_policy_file(session, file_path: Path) -> Path:
    policy = get_active_policy(session)
    if not policy:
        raise ValueError("No active policy found to export.")
    payload = {"name": policy.name, "params": policy.params_dict()}
    file_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return file_path


def import_policy_file(session, file_path: Path, *, edited_by: str = "import"):
    data = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Policy file must be a JSON object.")
    params = data.get("params") if isinstance(data.get("params"), dict) else None
    if params is None:
        params = {k: v for k, v in data.items() if k != "name"}
    params = dict(params)
    params.pop("name", None)
    name = data.get("name") or "Imported Policy"
    logger.info("Importing policy %r from %s", name, file_path)
    return upsert_policy(session, name, params, edited_by=edited_by)
