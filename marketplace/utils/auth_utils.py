"""
Authentication Utilities

Password hashing, profile creation and the authorization guard used by every
protected route.

The guard resolves the caller from the signed session cookie
(`session['user_id']`), loads the profile and checks its role:
- no session, or a session pointing at no profile → 401
- suspended profile or role not in the allowed set → 403
- the profile lookup itself failing → 500
On success the profile is available as `flask.g.profile`.
"""

from functools import wraps

import bcrypt
from flask import current_app, g, jsonify, session
from sqlalchemy.exc import SQLAlchemyError

from ..models import db, Profile


def hash_password(password):
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=current_app.config.get('BCRYPT_LOG_ROUNDS', 12))
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password, password_hash):
    """Verify a password against its hash"""
    if not password_hash:
        return False
    return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))


def create_profile(email, password, role='customer', **fields):
    """Create and persist a new profile"""
    profile = Profile(email=email, password_hash=hash_password(password), role=role, **fields)
    db.session.add(profile)
    db.session.commit()
    return profile


def authenticate_user(email, password):
    """Authenticate a profile with email and password"""
    profile = Profile.query.filter_by(email=(email or '').strip().lower()).first()

    if profile and verify_password(password, profile.password_hash):
        return profile

    return None


class AuthorizationError(Exception):
    """Raised by resolve_profile; carries the HTTP status to answer with"""

    def __init__(self, message, status_code):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def resolve_profile(roles=None):
    """
    Resolve the session user's profile and enforce `roles`.

    Args:
        roles: Iterable of accepted roles, or None for any authenticated profile

    Returns:
        The Profile

    Raises:
        AuthorizationError with status 401, 403 or 500
    """
    user_id = session.get('user_id')
    if not user_id:
        raise AuthorizationError('Oturum açmanız gerekiyor', 401)

    try:
        profile = db.session.get(Profile, user_id)
    except SQLAlchemyError as e:
        current_app.logger.error(f"Profile lookup failed for {user_id}: {str(e)}", exc_info=True)
        db.session.rollback()
        raise AuthorizationError('Profil bilgisi alınamadı', 500)

    if profile is None:
        raise AuthorizationError('Kullanıcı doğrulanamadı', 401)

    if not profile.is_active():
        raise AuthorizationError('Hesabınız askıya alınmış', 403)

    if roles and profile.role not in roles:
        current_app.logger.warning(f"Role check failed for {profile.id}: {profile.role} not in {sorted(roles)}")
        raise AuthorizationError('Bu işlem için yetkiniz yok', 403)

    return profile


def role_required(*roles):
    """Decorator to require a logged-in profile with one of `roles`"""
    allowed = frozenset(roles) if roles else None

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                g.profile = resolve_profile(allowed)
            except AuthorizationError as e:
                return jsonify({'error': e.message}), e.status_code
            return f(*args, **kwargs)
        return decorated_function

    return decorator


def login_required(f):
    """Decorator to require user login"""
    return role_required()(f)


def admin_required(f):
    """Decorator to require the admin role"""
    return role_required('admin')(f)
