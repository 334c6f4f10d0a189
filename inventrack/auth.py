from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from . import identity
from .policy import permissions_for

bp = Blueprint("auth", __name__)


def _form():
    return request.get_json(silent=True) or request.form


@bp.route("/register", methods=["POST"])
def register():
    f = _form()
    user = identity.register(f.get("username"), f.get("password"), f.get("role") or f.get("position"))
    return jsonify({"message": "User registered successfully", "user": user.to_dict()}), 201


@bp.route("/login", methods=["POST"])
def login():
    f = _form()
    user = identity.authenticate(f.get("username"), f.get("password"), f.get("role") or f.get("position"))
    login_user(user)
    return jsonify({"user": user.to_dict(), "permissions": permissions_for(user)})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})


@bp.route("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict(), "permissions": permissions_for(current_user)})
