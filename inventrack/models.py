from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from . import db, login_manager
from .time_helpers import utcnow, isoformat_utc


RESOLVED_STATUSES = ("Approved", "Rejected")


class User(UserMixin, db.Model):
    __tablename__ = "users"
    __table_args__ = (db.UniqueConstraint("username", "role", name="uq_users_username_role"),)
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    @classmethod
    def create_user(cls, username, password, role):
        u = cls(username=username, password_hash=generate_password_hash(password), role=role)
        db.session.add(u); db.session.commit(); return u

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {"id": self.id, "username": self.username, "role": self.role}

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


class ItemRequest(db.Model):
    __tablename__ = "item_requests"
    id = db.Column(db.Integer, primary_key=True)
    item_name = db.Column(db.String(200), nullable=False)
    brand = db.Column(db.String(120), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    requested_by = db.Column(db.String(80), nullable=False)
    request_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    status = db.Column(db.String(20), nullable=False, default="Pending", index=True)
    resolved_by = db.Column(db.String(80))
    resolved_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            "id": self.id,
            "item_name": self.item_name,
            "brand": self.brand,
            "quantity": self.quantity,
            "reason": self.reason,
            "requested_by": self.requested_by,
            "request_date": isoformat_utc(self.request_date),
            "status": self.status,
            "resolved_by": self.resolved_by,
            "resolved_at": isoformat_utc(self.resolved_at),
        }

    def __repr__(self):
        return f"<ItemRequest {self.id} {self.status}>"


class ArchivedRequest(db.Model):
    __tablename__ = "archived_requests"
    # same id as the active row it was moved from
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    item_name = db.Column(db.String(200), nullable=False)
    brand = db.Column(db.String(120), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    requested_by = db.Column(db.String(80), nullable=False)
    request_date = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), nullable=False)
    resolved_by = db.Column(db.String(80))
    resolved_at = db.Column(db.DateTime)
    archived_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @classmethod
    def from_request(cls, req, archived_at):
        return cls(
            id=req.id,
            item_name=req.item_name,
            brand=req.brand,
            quantity=req.quantity,
            reason=req.reason,
            requested_by=req.requested_by,
            request_date=req.request_date,
            status=req.status,
            resolved_by=req.resolved_by,
            resolved_at=req.resolved_at,
            archived_at=archived_at,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "item_name": self.item_name,
            "brand": self.brand,
            "quantity": self.quantity,
            "reason": self.reason,
            "requested_by": self.requested_by,
            "request_date": isoformat_utc(self.request_date),
            "status": self.status,
            "resolved_by": self.resolved_by,
            "resolved_at": isoformat_utc(self.resolved_at),
            "archived_at": isoformat_utc(self.archived_at),
        }


class ChangeLog(db.Model):
    __tablename__ = "changelog"
    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    username = db.Column(db.String(80))
    action = db.Column(db.String(50))
    entity = db.Column(db.String(50))
    entity_id = db.Column(db.Integer)
    details = db.Column(db.Text)

    @classmethod
    def record(cls, username, action, entity, entity_id, details=""):
        # caller commits
        entry = cls(username=username or "system", action=action, entity=entity,
                    entity_id=entity_id, details=details)
        db.session.add(entry)
        return entry

    def to_dict(self):
        return {
            "id": self.id,
            "created_at": isoformat_utc(self.created_at),
            "username": self.username,
            "action": self.action,
            "entity": self.entity,
            "entity_id": self.entity_id,
            "details": self.details,
        }
