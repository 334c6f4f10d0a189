from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from . import lifecycle

bp = Blueprint("requests", __name__)


@bp.route("", methods=["GET"], strict_slashes=False)
@login_required
def list_requests():
    return jsonify([r.to_dict() for r in lifecycle.list_active_requests()])


@bp.route("", methods=["POST"], strict_slashes=False)
@login_required
def submit_request():
    req = lifecycle.submit_request(request.get_json(silent=True) or {}, current_user)
    return jsonify(req.to_dict()), 201


@bp.route("/<int:request_id>", methods=["PUT"])
@login_required
def resolve_request(request_id):
    data = request.get_json(silent=True) or {}
    req = lifecycle.resolve_request(request_id, data.get("status"), current_user)
    return jsonify(req.to_dict())


@bp.route("/archive")
@login_required
def archived_requests():
    return jsonify([r.to_dict() for r in lifecycle.list_archived_requests(current_user)])
