import logging
from datetime import datetime
from . import db
from . import policy
from .errors import ValidationError, Conflict, NotFound
from .inventory_models import InventoryItem, SPEC_FIELDS
from .models import ChangeLog
from .persistence import atomic
from .time_helpers import utcnow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "brand", "serialNumber", "date_added")
TRUTHY = ("1", "true", "yes", "on")


def _text(payload, key):
    val = payload.get(key)
    if val is None:
        return ""
    return str(val).strip()


def parse_date(value, field):
    if isinstance(value, datetime):
        return value.date()
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD).")


def _flag(value):
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY


def clean_item_payload(payload):
    """Validate an item payload and return the column values to write.

    The whole mutable field set is returned, so update and create both
    rewrite every column. With ``hasSpecs`` off the specification fields
    come back as ``None`` whatever the payload carried.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Expected a JSON object.")
    missing = [k for k in REQUIRED_FIELDS if not _text(payload, k)]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))

    data = {
        "name": _text(payload, "name"),
        "brand": _text(payload, "brand"),
        "serial_number": _text(payload, "serialNumber"),
        "date_added": parse_date(payload.get("date_added"), "date_added"),
        "employee_user": _text(payload, "employeeUser") or None,
        "has_specs": _flag(payload.get("hasSpecs")),
    }

    if data["has_specs"]:
        missing = [k for k in SPEC_FIELDS if not _text(payload, k)]
        if missing:
            raise ValidationError("Missing specification fields: " + ", ".join(missing))
        for k in SPEC_FIELDS:
            data[k] = _text(payload, k)
        data["warranty_expiration"] = parse_date(payload.get("warranty_expiration"), "warranty_expiration")
    else:
        for k in SPEC_FIELDS:
            data[k] = None
    return data


def _serial_taken(serial, exclude_id=None):
    q = InventoryItem.query.filter(InventoryItem.serial_number == serial)
    if exclude_id is not None:
        q = q.filter(InventoryItem.id != exclude_id)
    return db.session.query(q.exists()).scalar()


def list_items():
    return InventoryItem.query.order_by(InventoryItem.id.desc()).all()


def get_item(item_id):
    it = db.session.get(InventoryItem, item_id)
    if it is None:
        raise NotFound(f"Item {item_id} not found.")
    return it


def create_item(payload, actor):
    policy.require(actor, policy.CREATE_ITEM, message="Only Admin or IT can add items.")
    data = clean_item_payload(payload)
    conflict_msg = f"Serial number {data['serial_number']} already exists."
    if _serial_taken(data["serial_number"]):
        raise Conflict(conflict_msg)

    it = InventoryItem(added_by=actor.username, **data)
    with atomic(conflict_msg):
        db.session.add(it)
        db.session.flush()
        ChangeLog.record(actor.username, "create", "Item", it.id,
                         details=f"Added {it.name} ({it.serial_number})")
    logger.info("item %s created by %s", it.serial_number, actor.username)
    return it


def update_item(item_id, payload, actor):
    policy.require(actor, policy.VIEW)
    it = get_item(item_id)
    policy.require(actor, policy.EDIT_ITEM, owner=it.added_by,
                   message="Only Admin or the IT user who added this item can edit it.")
    data = clean_item_payload(payload)
    conflict_msg = f"Serial number {data['serial_number']} already exists."
    if _serial_taken(data["serial_number"], exclude_id=it.id):
        raise Conflict(conflict_msg)

    before = (it.name, it.brand, it.serial_number, it.date_added)
    with atomic(conflict_msg):
        for k, v in data.items():
            setattr(it, k, v)
        it.edited_by = actor.username
        it.edited_at = utcnow()
        ChangeLog.record(actor.username, "update", "Item", it.id,
                         details=f"Before {before} / After {(it.name, it.brand, it.serial_number, it.date_added)}")
    logger.info("item %s updated by %s", it.id, actor.username)
    return it


def delete_item(item_id, actor):
    policy.require(actor, policy.VIEW)
    it = get_item(item_id)
    policy.require(actor, policy.DELETE_ITEM, owner=it.added_by,
                   message="Only Admin or the IT user who added this item can delete it.")
    desc = f"Deleted {it.name} ({it.serial_number})"
    with atomic():
        db.session.delete(it)
        ChangeLog.record(actor.username, "delete", "Item", item_id, details=desc)
    logger.info("item %s deleted by %s", item_id, actor.username)
    return item_id
