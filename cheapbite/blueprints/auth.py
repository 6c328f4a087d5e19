"""
Auth blueprint.

POST /api/auth/register   – create a sign-in identity and its account
POST /api/auth/login      – password sign-in (creates the account if missing)
POST /api/auth/logout     – end the session
GET  /api/auth/me         – the signed-in user's private record
GET  /api/auth/csrf       – CSRF token for the X-CSRFToken header
"""
import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from cheapbite.extensions import limiter
from cheapbite.forms.auth import LoginForm, RegisterForm
from cheapbite.forms.base import bind_form
from cheapbite.utils.accounts import Identity, authenticate, create_account, register_identity

log = logging.getLogger(__name__)
auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/api/auth/register", methods=["POST"])
@limiter.limit("10 per minute")
def register():
    form = bind_form(RegisterForm)
    auth = register_identity(form.email.data, form.password.data, form.display_name.data)
    user = create_account(Identity.from_auth(auth))
    login_user(user)
    log.info("Registered %s", user.username)
    return jsonify(user.to_private_dict()), 201


@auth_bp.route("/api/auth/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = bind_form(LoginForm)
    auth = authenticate(form.email.data, form.password.data)
    if auth is None:
        log.warning("Failed sign-in for %s", form.email.data)
        return jsonify(error="invalid_credentials", message="Invalid email or password"), 401
    user = create_account(Identity.from_auth(auth))
    login_user(user)
    return jsonify(user.to_private_dict())


@auth_bp.route("/api/auth/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify(success=True)


@auth_bp.route("/api/auth/me")
@login_required
def me():
    return jsonify(current_user.to_private_dict())


@auth_bp.route("/api/auth/csrf")
def csrf_token():
    return jsonify(csrfToken=generate_csrf())
