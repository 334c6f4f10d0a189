"""Role based authorization rules.

Every mutating operation asks ``is_allowed`` (or ``require``) before touching
the store. The same table feeds ``permissions_for`` so the front end can
show or hide controls without keeping its own copy of the rules.
"""

from .errors import Forbidden, Unauthorized

ADMIN = "Admin"
IT = "IT"
MANAGER = "Manager"
SUPERVISOR = "Supervisor"
AUDIT = "Audit"

ROLES = (ADMIN, IT, MANAGER, SUPERVISOR, AUDIT)

VIEW = "view"
CREATE_ITEM = "create_item"
EDIT_ITEM = "edit_item"
DELETE_ITEM = "delete_item"
EXPORT_ITEMS = "export_items"
SUBMIT_REQUEST = "submit_request"
RESOLVE_REQUEST = "resolve_request"
VIEW_ARCHIVE = "view_archive"
VIEW_CHANGELOG = "view_changelog"

ITEM_CREATORS = {ADMIN, IT}
APPROVERS = {ADMIN, MANAGER}
ARCHIVE_HIDDEN = {AUDIT, SUPERVISOR}


def _can_edit_item(role, username, owner):
    if role == ADMIN:
        return True
    return role == IT and owner is not None and username == owner


def is_allowed(user, action, owner=None, status=None):
    """Decide whether ``user`` may perform ``action``.

    ``owner`` is the ``added_by`` of the targeted item; ``status`` the current
    status of the targeted request. Both are only consulted by the actions
    that depend on them. Anonymous users (``None`` or not authenticated) are
    denied everything.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    role = getattr(user, "role", None)
    if role not in ROLES:
        return False

    if action in (VIEW, SUBMIT_REQUEST, EXPORT_ITEMS):
        return True
    if action == CREATE_ITEM:
        return role in ITEM_CREATORS
    if action in (EDIT_ITEM, DELETE_ITEM):
        return _can_edit_item(role, user.username, owner)
    if action == RESOLVE_REQUEST:
        if role not in APPROVERS:
            return False
        return status is None or status == "Pending"
    if action == VIEW_ARCHIVE:
        return role not in ARCHIVE_HIDDEN
    if action == VIEW_CHANGELOG:
        return role == ADMIN
    return False


def require(user, action, owner=None, status=None, message=None):
    if user is None or not getattr(user, "is_authenticated", False):
        raise Unauthorized()
    if not is_allowed(user, action, owner=owner, status=status):
        raise Forbidden(message)


def permissions_for(user):
    # Item-independent view of the table; per-item edit rights are resolved
    # by comparing ``added_by`` with the current username.
    return {
        "can_add_item": is_allowed(user, CREATE_ITEM),
        "can_edit_any_item": getattr(user, "role", None) == ADMIN,
        "can_edit_own_items": is_allowed(user, CREATE_ITEM),
        "can_resolve_requests": is_allowed(user, RESOLVE_REQUEST),
        "can_view_archive": is_allowed(user, VIEW_ARCHIVE),
        "can_export": is_allowed(user, EXPORT_ITEMS),
        "can_view_changelog": is_allowed(user, VIEW_CHANGELOG),
    }
