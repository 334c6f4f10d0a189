"""Procurement request lifecycle.

A request is created ``Pending``, resolved once to ``Approved`` or
``Rejected`` by an approver, and later moved by the archive sweep from
``item_requests`` to ``archived_requests`` once it has aged past its
retention window (3 days for rejected, 5 days for approved by default).
"""
import logging
from datetime import timedelta
from flask import current_app
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from . import db
from . import policy
from .errors import ValidationError, Conflict, NotFound
from .models import ItemRequest, ArchivedRequest, ChangeLog, RESOLVED_STATUSES
from .persistence import atomic
from .time_helpers import utcnow

logger = logging.getLogger(__name__)

DEFAULT_REJECTED_DAYS = 3
DEFAULT_APPROVED_DAYS = 5
# largest value the quantity column holds
MAX_QUANTITY = 2**63 - 1


def _parse_quantity(value):
    if isinstance(value, bool) or value is None:
        raise ValidationError("quantity must be a positive integer.")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("quantity must be a positive integer.")
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be a positive integer.")
    if qty <= 0:
        raise ValidationError("quantity must be a positive integer.")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"quantity must be at most {MAX_QUANTITY}.")
    return qty


def list_active_requests():
    return ItemRequest.query.order_by(ItemRequest.id.desc()).all()


def list_archived_requests(actor):
    policy.require(actor, policy.VIEW_ARCHIVE, message="Archive is not available for this role.")
    return ArchivedRequest.query.order_by(ArchivedRequest.archived_at.desc(), ArchivedRequest.id.desc()).all()


def submit_request(payload, actor, now=None):
    policy.require(actor, policy.SUBMIT_REQUEST)
    if not isinstance(payload, dict):
        raise ValidationError("Expected a JSON object.")
    item_name = str(payload.get("item_name") or "").strip()
    brand = str(payload.get("brand") or "").strip()
    reason = str(payload.get("reason") or "").strip()
    missing = [k for k, v in (("item_name", item_name), ("brand", brand), ("reason", reason)) if not v]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))
    quantity = _parse_quantity(payload.get("quantity"))

    req = ItemRequest(
        item_name=item_name,
        brand=brand,
        quantity=quantity,
        reason=reason,
        requested_by=actor.username,
        request_date=now or utcnow(),
        status="Pending",
    )
    with atomic():
        db.session.add(req)
        db.session.flush()
        ChangeLog.record(actor.username, "submit", "Request", req.id,
                         details=f"{quantity} x {item_name} ({brand})")
    logger.info("request %s submitted by %s", req.id, actor.username)
    return req


def resolve_request(request_id, decision, actor, now=None):
    """Move a pending request to ``decision`` (Approved or Rejected).

    Resolved requests are terminal: resolving one again raises ``Conflict``.
    """
    policy.require(actor, policy.RESOLVE_REQUEST, message="Only Admin or Manager can resolve requests.")
    decision = (decision or "").strip().capitalize() if isinstance(decision, str) else decision
    if decision not in RESOLVED_STATUSES:
        raise ValidationError("status must be Approved or Rejected.")

    req = db.session.get(ItemRequest, request_id)
    if req is None:
        raise NotFound(f"Request {request_id} not found.")
    if req.status != "Pending":
        raise Conflict(f"Request {request_id} is already {req.status}.")

    with atomic():
        req.status = decision
        req.resolved_by = actor.username
        req.resolved_at = now or utcnow()
        ChangeLog.record(actor.username, "resolve", "Request", req.id, details=decision)
    logger.info("request %s %s by %s", req.id, decision.lower(), actor.username)
    return req


def _thresholds(rejected_days=None, approved_days=None):
    cfg = current_app.config
    if rejected_days is None:
        rejected_days = int(cfg.get("ARCHIVE_REJECTED_DAYS", DEFAULT_REJECTED_DAYS))
    if approved_days is None:
        approved_days = int(cfg.get("ARCHIVE_APPROVED_DAYS", DEFAULT_APPROVED_DAYS))
    return rejected_days, approved_days


def is_archivable(req, now, rejected_days=DEFAULT_REJECTED_DAYS, approved_days=DEFAULT_APPROVED_DAYS):
    if req.request_date is None:
        return False
    age = now - req.request_date
    if req.status == "Rejected":
        return age >= timedelta(days=rejected_days)
    if req.status == "Approved":
        return age >= timedelta(days=approved_days)
    return False


def archive_candidates(now, rejected_days=DEFAULT_REJECTED_DAYS, approved_days=DEFAULT_APPROVED_DAYS):
    q = db.session.query(ItemRequest.id).filter(or_(
        and_(ItemRequest.status == "Rejected",
             ItemRequest.request_date <= now - timedelta(days=rejected_days)),
        and_(ItemRequest.status == "Approved",
             ItemRequest.request_date <= now - timedelta(days=approved_days)),
    ))
    return [rid for (rid,) in q.order_by(ItemRequest.id.asc()).all()]


def archive_stale_requests(now=None, rejected_days=None, approved_days=None):
    """Move aged resolved requests into the archive table.

    Each request is re-read and re-checked inside its own transaction, the
    archive row is written (unless one already exists for that id) and
    flushed before the active row is deleted. A failure rolls back that one
    request, which stays active until the next run.
    """
    now = now or utcnow()
    rejected_days, approved_days = _thresholds(rejected_days, approved_days)
    ids = archive_candidates(now, rejected_days, approved_days)
    archived, failed = 0, 0

    for rid in ids:
        try:
            # bypass the identity map, a resolution may have landed since the scan
            req = db.session.get(ItemRequest, rid, populate_existing=True)
            if req is None or not is_archivable(req, now, rejected_days, approved_days):
                continue
            if db.session.get(ArchivedRequest, rid) is None:
                db.session.add(ArchivedRequest.from_request(req, archived_at=now))
                db.session.flush()
            db.session.delete(req)
            ChangeLog.record("system", "archive", "Request", rid, details=req.status)
            db.session.commit()
            archived += 1
        except SQLAlchemyError:
            db.session.rollback()
            failed += 1
            logger.exception("archiving request %s failed, will retry next run", rid)

    logger.info("archive sweep: %d candidates, %d archived, %d failed", len(ids), archived, failed)
    return {"candidates": len(ids), "archived": archived, "failed": failed}
