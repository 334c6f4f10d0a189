from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from .models import User, ChangeLog
from . import policy

bp = Blueprint("admin", __name__)


def require_admin():
    policy.require(current_user, policy.VIEW_CHANGELOG, message="Admin only.")


@bp.route("/users")
@login_required
def users_list():
    require_admin()
    users = User.query.order_by(User.username.asc(), User.role.asc()).all()
    return jsonify([u.to_dict() for u in users])


@bp.route("/changelog")
@login_required
def changelog():
    require_admin()
    q = ChangeLog.query
    entity = (request.args.get("entity") or "").strip()
    if entity:
        q = q.filter(ChangeLog.entity == entity)
    try:
        limit = min(int(request.args.get("limit", 500)), 500)
    except ValueError:
        limit = 500
    logs = q.order_by(ChangeLog.created_at.desc(), ChangeLog.id.desc()).limit(limit).all()
    return jsonify([l.to_dict() for l in logs])
