from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from . import inventory_service as service
from . import policy
from .time_helpers import now_local
from .utils_export import stream_csv, stream_xlsx, signoff_footer

bp = Blueprint("inventory", __name__)

EXPORT_HEADERS = ["Name", "Brand", "Serial Number", "Date Added", "Added By", "Assigned To"]


def _export_rows():
    return [[i.name, i.brand, i.serial_number, i.date_added.isoformat() if i.date_added else "",
             i.added_by, i.employee_user or ""] for i in service.list_items()]


@bp.route("", methods=["GET"], strict_slashes=False)
@login_required
def list_items():
    return jsonify([i.to_dict() for i in service.list_items()])


@bp.route("", methods=["POST"], strict_slashes=False)
@login_required
def new_item():
    it = service.create_item(request.get_json(silent=True) or {}, current_user)
    return jsonify(it.to_dict()), 201


@bp.route("/<int:item_id>", methods=["GET"])
@login_required
def view_item(item_id):
    return jsonify(service.get_item(item_id).to_dict())


@bp.route("/<int:item_id>", methods=["PUT"])
@login_required
def edit_item(item_id):
    it = service.update_item(item_id, request.get_json(silent=True) or {}, current_user)
    return jsonify(it.to_dict())


@bp.route("/<int:item_id>", methods=["DELETE"])
@login_required
def delete_item(item_id):
    service.delete_item(item_id, current_user)
    return jsonify({"deleted": item_id})


@bp.route("/export")
@bp.route("/export.csv")
@login_required
def export_csv():
    policy.require(current_user, policy.EXPORT_ITEMS)
    footer = signoff_footer(now_local().strftime("%Y-%m-%d"), current_user.username)
    stamp = now_local().strftime("%Y%m%d_%H%M%S")
    return stream_csv(f"inventory_{stamp}.csv", EXPORT_HEADERS, _export_rows(), footer=footer)


@bp.route("/export.xlsx")
@login_required
def export_xlsx():
    policy.require(current_user, policy.EXPORT_ITEMS)
    stamp = now_local().strftime("%Y%m%d_%H%M%S")
    return stream_xlsx(f"inventory_{stamp}.xlsx", EXPORT_HEADERS, _export_rows())
