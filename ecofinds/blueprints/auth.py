from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required
from sqlalchemy import or_
from ecofinds.errors import Conflict, InvalidArgument, Unauthenticated
from ecofinds.extensions import db, identity
from ecofinds.models import User
from ecofinds.services.audit_service import log_audit
from ecofinds.utils import get_json_body, isoformat, parse_str, user_summary
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__)


def _check_password_length(password, message):
    if len(password) < current_app.config.get('MIN_PASSWORD_LENGTH', 6):
        raise InvalidArgument(message)


@bp.route('/api/auth/register', methods=['POST'])
def register():
    data = get_json_body()
    username = parse_str(data.get('username'), 'Username')
    email = parse_str(data.get('email'), 'Email')
    password = parse_str(data.get('password'), 'Password', strip=False)

    if not username or not email or not password:
        raise InvalidArgument('All fields are required')

    _check_password_length(
        password, 'Password must be at least '
        f"{current_app.config.get('MIN_PASSWORD_LENGTH', 6)} characters")

    existing = User.query.filter(
        or_(User.email == email, User.username == username)
    ).first()
    if existing:
        raise Conflict('User already exists with this email or username')

    user = User(username=username, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    log_audit(
        actor_id=user.id,
        action='USER_REGISTER',
        target_type='USER',
        target_id=user.id,
        payload={'username': username}
    )
    logger.info("User registered: %s", user.id)

    return jsonify({
        'message': 'User created successfully',
        'token': identity.issue_credential(user.id),
        'user': user_summary(user),
    }), 201


@bp.route('/api/auth/login', methods=['POST'])
def login():
    data = get_json_body()
    email = parse_str(data.get('email'), 'Email')
    password = parse_str(data.get('password'), 'Password', strip=False)

    if not email or not password:
        raise InvalidArgument('Email and password are required')

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        log_audit(
            actor_id=None,
            action='LOGIN_FAILED',
            target_type='USER',
            target_id=user.id if user else None,
            payload={
                'reason': 'invalid_credentials' if user else 'user_not_found'})
        raise Unauthenticated('Invalid credentials')

    log_audit(
        actor_id=user.id,
        action='LOGIN_SUCCESS',
        target_type='USER',
        target_id=user.id,
        payload={'event': 'login_success'}
    )

    return jsonify({
        'message': 'Login successful',
        'token': identity.issue_credential(user.id),
        'user': user_summary(user),
    })


@bp.route('/api/auth/me', methods=['GET'])
@login_required
def me():
    user = user_summary(current_user)
    user['created_at'] = isoformat(current_user.created_at)
    return jsonify({'user': user})


@bp.route('/api/auth/profile', methods=['PUT'])
@login_required
def update_profile():
    data = get_json_body()
    username = parse_str(data.get('username'), 'Username')
    email = parse_str(data.get('email'), 'Email')
    current_password = parse_str(
        data.get('currentPassword'), 'Current password', strip=False)
    new_password = parse_str(
        data.get('newPassword'), 'New password', strip=False)

    user = current_user
    changed = []

    if username and username != user.username:
        taken = User.query.filter(
            User.username == username, User.id != user.id).first()
        if taken:
            raise Conflict('Username already taken')
        user.username = username
        changed.append('username')

    if email and email != user.email:
        taken = User.query.filter(
            User.email == email, User.id != user.id).first()
        if taken:
            raise Conflict('Email already taken')
        user.email = email
        changed.append('email')

    if new_password:
        if not current_password:
            raise InvalidArgument(
                'Current password is required to change password')
        if not user.check_password(current_password):
            raise InvalidArgument('Current password is incorrect')
        _check_password_length(
            new_password, 'New password must be at least '
            f"{current_app.config.get('MIN_PASSWORD_LENGTH', 6)} characters")
        user.set_password(new_password)
        changed.append('password')

    if not changed:
        raise InvalidArgument('No updates provided')

    user.updated_at = datetime.utcnow()
    db.session.commit()

    log_audit(
        actor_id=user.id,
        action='USER_PROFILE_UPDATE',
        target_type='USER',
        target_id=user.id,
        payload={'fields': changed}
    )

    return jsonify({
        'message': 'Profile updated successfully',
        'user': user_summary(user),
    })


@bp.route('/api/auth/verify', methods=['GET'])
@login_required
def verify():
    return jsonify({
        'message': 'Token is valid',
        'user': user_summary(current_user),
    })
