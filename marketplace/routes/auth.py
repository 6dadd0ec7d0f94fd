"""
Authentication Routes

FLOW OVERVIEW
- /auth/register [POST]
  • Validate email + password strength → create customer profile → 201.
- /auth/login [POST]
  • Authenticate → reject suspended profiles → set session → return profile.
- /auth/logout [POST]
  • Clear session.
- /auth/profile [GET]
  • Profile of the session user.
"""

from flask import Blueprint, current_app, g, jsonify, session
from sqlalchemy.exc import SQLAlchemyError

from ..models import db, Profile
from ..utils.api_utils import request_validator, error_response
from ..utils.auth_utils import authenticate_user, create_profile, login_required
from ..utils.validators import validate_email, validate_password_strength, sanitize_input

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    """User registration endpoint"""
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    password = data.get('password') or ''
    if not data.get('email') or not password:
        return error_response('Email and password are required', 400)

    email_validation = validate_email(data['email'])
    if not email_validation.is_valid:
        return error_response(email_validation.error_message, 400)
    email = email_validation.sanitized_value

    password_validation = validate_password_strength(password)
    if not password_validation.is_valid:
        return error_response(password_validation.error_message, 400)

    if Profile.query.filter_by(email=email).first():
        return error_response('User with this email already exists', 409)

    try:
        profile = create_profile(
            email,
            password,
            role='customer',
            first_name=sanitize_input(data.get('first_name') or '', 100) or None,
            last_name=sanitize_input(data.get('last_name') or '', 100) or None,
        )
    except (SQLAlchemyError, ValueError) as e:
        db.session.rollback()
        current_app.logger.error(f"Registration failed for {email}: {str(e)}", exc_info=True)
        return error_response('Registration failed. Please try again.', 500)

    current_app.logger.info(f"Registered profile {profile.id}")
    return jsonify({
        'success': True,
        'message': 'Registration successful',
        'user': profile.to_dict(),
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """User login endpoint"""
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password:
        return error_response('Email and password are required', 400)

    profile = authenticate_user(email, password)
    if profile is None:
        current_app.logger.warning(f"Failed login for {email} from {request_validator.client_ip()}")
        return error_response('Invalid email or password', 401)

    if not profile.is_active():
        return error_response('Hesabınız askıya alınmış', 401)

    session.clear()
    session['user_id'] = profile.id
    session['user_email'] = profile.email
    session.permanent = True

    profile.update_last_login()

    return jsonify({'success': True, 'user': profile.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """User logout endpoint"""
    session.clear()
    return jsonify({'success': True})


@auth_bp.route('/profile')
@login_required
def profile():
    return jsonify({'success': True, 'profile': g.profile.to_dict()})
