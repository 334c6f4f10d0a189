import logging
from werkzeug.security import generate_password_hash
from . import db, policy
from .errors import ValidationError, Conflict, Unauthorized
from .models import User
from .persistence import commit

logger = logging.getLogger(__name__)


def _credentials(username, password, role):
    username = (username or "").strip()
    password = password or ""
    role = (role or "").strip()
    if not username or not password or not role:
        raise ValidationError("Username, password and role are required.")
    if role not in policy.ROLES:
        raise ValidationError("Unknown role. Expected one of: " + ", ".join(policy.ROLES))
    return username, password, role


def register(username, password, role):
    username, password, role = _credentials(username, password, role)
    if User.query.filter_by(username=username, role=role).first():
        raise Conflict("User with this role already exists.")
    u = User(username=username, password_hash=generate_password_hash(password), role=role)
    db.session.add(u)
    commit("User with this role already exists.")
    logger.info("registered %s (%s)", username, role)
    return u


def authenticate(username, password, role):
    username, password, role = _credentials(username, password, role)
    user = User.query.filter_by(username=username, role=role).first()
    if user is None or not user.check_password(password):
        logger.info("failed login for %s (%s)", username, role)
        raise Unauthorized("Username, password and role do not match.")
    return user


def ensure_admin(username, password):
    """Seed the default Admin identity on an empty database."""
    if not User.query.filter_by(username=username, role=policy.ADMIN).first():
        User.create_user(username, password, role=policy.ADMIN)
        logger.info("seeded admin user %s", username)
