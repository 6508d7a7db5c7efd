"""FastAPI service exposing the reconciled schedule view.

The service owns the "current dataset": feeds are loaded and merged once at
startup (or on reload) and every schedule request filters and groups that
merged list into a fresh view.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import datetime
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import database
from .database import DATA_DIR, get_active_policy, record_audit_log, upsert_policy
from .dates import coerce_date, default_date_range
from .feeds import FeedLoadError, load_feeds, resolve_feed_paths
from .policy import ensure_default_policy, load_active_policy, window_settings
from .reconcile import summarize_merge
from .view import build_schedule_view, serialize_view

logger = logging.getLogger(__name__)

FEED_DIR: Path = DATA_DIR


def _reload_dataset(app_: FastAPI) -> None:
    policy = load_active_policy(database.PolicySessionLocal)
    plan_path, fact_path = resolve_feed_paths(FEED_DIR, policy)
    try:
        plans, facts = load_feeds(plan_path, fact_path, policy)
    except FeedLoadError as exc:
        logger.error("Feed load failed: %s", exc)
        app_.state.summary = None
        app_.state.feed_error = str(exc)
        raise
    app_.state.summary = summarize_merge(plans, facts)
    app_.state.feed_error = None


@asynccontextmanager
async def lifespan(app_: FastAPI):
    database.init_database()
    ensure_default_policy(database.PolicySessionLocal)
    try:
        _reload_dataset(app_)
    except FeedLoadError:
        # Keep serving; schedule endpoints answer 503 until a reload succeeds.
        pass
    yield


app = FastAPI(title="Shift Reconciliation API", version="0.1", lifespan=lifespan)


def get_db():
    db = database.PolicySessionLocal()
    try:
        yield db
    finally:
        db.close()


def _current_summary():
    summary = getattr(app.state, "summary", None)
    if summary is None:
        detail = getattr(app.state, "feed_error", None) or "Feeds are not loaded"
        raise HTTPException(status_code=503, detail=detail)
    return summary


def _parse_bound(value: str, name: str) -> datetime.date:
    try:
        return coerce_date(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} must be YYYY-MM-DD")


def _policy_payload(policy: database.Policy) -> Dict[str, Any]:
    return {
        "id": policy.id,
        "name": policy.name,
        "params": policy.params_dict(),
        "lastEditedBy": policy.lastEditedBy,
        "lastEditedAt": policy.lastEditedAt.isoformat() if policy.lastEditedAt else None,
    }


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/schedule")
def schedule_view(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    max_days: Optional[int] = Query(None, alias="maxDays"),
    db: Session = Depends(get_db),
) -> JSONResponse:
    summary = _current_summary()
    settings = window_settings(load_active_policy(db))
    default_start, default_end = default_date_range(days=settings["default_range_days"])
    range_start = _parse_bound(start, "start") if start else default_start
    range_end = _parse_bound(end, "end") if end else default_end
    cap = settings["max_consecutive_days"] if max_days is None else max_days
    try:
        groups = build_schedule_view(summary.shifts, range_start, range_end, cap)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse(
        content=jsonable_encoder(
            {
                "start": range_start.isoformat(),
                "end": range_end.isoformat(),
                "maxDays": cap,
                "groups": serialize_view(groups),
            }
        )
    )


@app.get("/api/v1/reconciliation/summary")
def reconciliation_summary() -> JSONResponse:
    summary = _current_summary()
    return JSONResponse(content=jsonable_encoder(summary.counts()))


@app.post("/api/v1/feeds/reload")
def reload_feeds() -> JSONResponse:
    try:
        _reload_dataset(app)
    except FeedLoadError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return JSONResponse(content=jsonable_encoder(app.state.summary.counts()))


@app.get("/api/v1/policy/active")
def active_policy(db: Session = Depends(get_db)) -> JSONResponse:
    policy = get_active_policy(db)
    if not policy:
        raise HTTPException(status_code=404, detail="No active policy found")
    return JSONResponse(content=jsonable_encoder(_policy_payload(policy)))


@app.put("/api/v1/policy/active")
def set_active_policy(payload: Dict[str, Any], db: Session = Depends(get_db)) -> JSONResponse:
    name = payload.get("name")
    params = payload.get("params") or {}
    actor = (payload.get("actor") or "api").strip() or "api"
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    if not isinstance(params, dict):
        raise HTTPException(status_code=400, detail="params must be an object")
    policy = upsert_policy(db, name=name, params_dict=params, edited_by=actor)
    record_audit_log(db, user_id=actor, action="POLICY_EDIT", target_id=policy.id, payload={"name": policy.name})
    return JSONResponse(content=jsonable_encoder(_policy_payload(policy)))
