from . import db
from .time_helpers import utcnow, isoformat_utc

SPEC_FIELDS = ("model", "warranty_expiration", "cpu", "ram", "storage")


class InventoryItem(db.Model):
    __tablename__ = "inventory"
    id = db.Column(db.Integer, primary_key=True)
    serial_number = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    brand = db.Column(db.String(120), nullable=False)
    date_added = db.Column(db.Date, nullable=False)
    added_by = db.Column(db.String(80), nullable=False, index=True)
    employee_user = db.Column(db.String(120))
    # specification block, all set or all null
    has_specs = db.Column(db.Boolean, nullable=False, default=False)
    model = db.Column(db.String(120))
    warranty_expiration = db.Column(db.Date)
    cpu = db.Column(db.String(120))
    ram = db.Column(db.String(60))
    storage = db.Column(db.String(60))
    edited_by = db.Column(db.String(80))
    edited_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "serialNumber": self.serial_number,
            "name": self.name,
            "brand": self.brand,
            "date_added": self.date_added.isoformat() if self.date_added else None,
            "added_by": self.added_by,
            "employeeUser": self.employee_user,
            "hasSpecs": bool(self.has_specs),
            "model": self.model,
            "warranty_expiration": self.warranty_expiration.isoformat() if self.warranty_expiration else None,
            "cpu": self.cpu,
            "ram": self.ram,
            "storage": self.storage,
            "edited_by": self.edited_by,
            "edited_at": isoformat_utc(self.edited_at),
        }

    def __repr__(self):
        return f"<InventoryItem {self.serial_number}>"
