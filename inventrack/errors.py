from flask import jsonify
from werkzeug.exceptions import HTTPException


class InventoryError(Exception):
    """Base class for errors reported back to the caller."""
    status_code = 500
    kind = "error"
    default_message = "Operation failed."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {"error": self.kind, "message": self.message}


class ValidationError(InventoryError):
    status_code = 400
    kind = "validation_error"
    default_message = "Missing required fields."


class Conflict(InventoryError):
    status_code = 409
    kind = "conflict"
    default_message = "Resource already exists."


class Unauthorized(InventoryError):
    status_code = 401
    kind = "unauthorized"
    default_message = "Authentication required."


class Forbidden(InventoryError):
    status_code = 403
    kind = "forbidden"
    default_message = "Not allowed for this role."


class NotFound(InventoryError):
    status_code = 404
    kind = "not_found"
    default_message = "Not found."


class StorageFailure(InventoryError):
    status_code = 500
    kind = "storage_failure"
    default_message = "Storage error, try again later."


def register_error_handlers(app):
    @app.errorhandler(InventoryError)
    def _inventory_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(404)
    def _not_found(_err):
        return jsonify(NotFound().to_dict()), 404

    @app.errorhandler(405)
    def _method_not_allowed(_err):
        return jsonify({"error": "method_not_allowed", "message": "Method not allowed."}), 405

    @app.errorhandler(Exception)
    def _unhandled(err):
        if isinstance(err, HTTPException):
            return jsonify({"error": err.name.lower().replace(" ", "_"), "message": err.description}), err.code
        app.logger.exception("unhandled error")
        return jsonify({"error": "internal_error", "message": "Internal error."}), 500
