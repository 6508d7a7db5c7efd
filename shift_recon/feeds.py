from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .dates import parse_timestamp
from .models import FactRecord, PlanRecord
from .policy import feed_settings

logger = logging.getLogger(__name__)


class FeedLoadError(RuntimeError):
    """A feed could not be read or decoded as a JSON array."""

    def __init__(self, feed: str, path: Path, reason: str) -> None:
        super().__init__(f"Could not load {feed} feed from {path}: {reason}")
        self.feed = feed
        self.path = path
        self.reason = reason


def _lookup(row: Dict[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _rows(rows: Iterable[Any], feed: str) -> Iterable[Dict[str, Any]]:
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            logger.warning("Skipping %s row %d: expected an object, got %s", feed, index, type(row).__name__)
            continue
        yield row


def parse_plan_records(rows: Iterable[Any], fields: Optional[Dict[str, List[str]]] = None) -> List[PlanRecord]:
    fields = fields or feed_settings({})["fields"]["plan"]
    return [
        PlanRecord(
            employee=_text(_lookup(row, fields["employee"])),
            store=_text(_lookup(row, fields["store"])),
            role=_text(_lookup(row, fields["role"])),
            plan_start=parse_timestamp(_lookup(row, fields["start"])),
            plan_end=parse_timestamp(_lookup(row, fields["end"])),
        )
        for row in _rows(rows, "plan")
    ]


def parse_fact_records(rows: Iterable[Any], fields: Optional[Dict[str, List[str]]] = None) -> List[FactRecord]:
    fields = fields or feed_settings({})["fields"]["fact"]
    return [
        FactRecord(
            employee=_text(_lookup(row, fields["employee"])),
            store=_text(_lookup(row, fields["store"])),
            fact_start=parse_timestamp(_lookup(row, fields["start"])),
            fact_end=parse_timestamp(_lookup(row, fields["end"])),
        )
        for row in _rows(rows, "fact")
    ]


def read_feed(path: Path, feed: str = "feed") -> List[Any]:
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        raise FeedLoadError(feed, path, "file not found") from None
    except UnicodeDecodeError as exc:
        raise FeedLoadError(feed, path, f"not valid UTF-8 ({exc.reason})") from exc
    except OSError as exc:
        raise FeedLoadError(feed, path, str(exc)) from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise FeedLoadError(feed, path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    if not isinstance(data, list):
        raise FeedLoadError(feed, path, "expected a JSON array of records")
    return data


def load_feeds(
    plan_path: Path, fact_path: Path, policy: Optional[Dict] = None
) -> Tuple[List[PlanRecord], List[FactRecord]]:
    """Read both feeds; either both load or FeedLoadError is raised."""
    fields = feed_settings(policy or {})["fields"]
    plan_rows = read_feed(plan_path, "plan")
    fact_rows = read_feed(fact_path, "fact")
    plans = parse_plan_records(plan_rows, fields["plan"])
    facts = parse_fact_records(fact_rows, fields["fact"])
    logger.info("Loaded %d plan rows from %s and %d fact rows from %s", len(plans), plan_path, len(facts), fact_path)
    return plans, facts


def resolve_feed_paths(data_dir: Path, policy: Optional[Dict] = None) -> Tuple[Path, Path]:
    settings = feed_settings(policy or {})
    return Path(data_dir) / settings["plan_file"], Path(data_dir) / settings["fact_file"]
