"""
Authentication blueprint:
- POST /auth/signup
- POST /auth/login
- POST /auth/refresh-token
- GET  /auth/profile
- POST /auth/logout

Signup and login issue an access/refresh pair. Both are set as http-only
cookies; the access token is also returned in the body for clients that
prefer the Authorization header. The refresh token is recorded in the
session store, which is the only authority on whether it is still valid.
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, abort

from models import storage
from models.user import User
from models.schemas.user import UserSignupSchema, UserLoginSchema, UserOutSchema

from utils.credentials import (
    clear_auth_cookies,
    refresh_cookie,
    set_access_cookie,
    set_refresh_cookie,
)
from utils.decorators import session_required
from utils.guard import get_guard
from utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

user_signup_schema = UserSignupSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()


def _session_response(user: User, status: int):
    guard = get_guard()
    pair = guard.start_session(user.id)
    response = jsonify(
        {
            "user": user_out_schema.dump(user),
            "access_token": pair.access_token,
            "token_type": "bearer",
            "expires_in": guard.access_ttl_seconds,
        }
    )
    response.status_code = status
    set_access_cookie(response, pair.access_token, guard.access_ttl_seconds)
    set_refresh_cookie(response, pair.refresh_token, guard.refresh_ttl_seconds)
    return response


@bp.post("/signup")
def signup():
    """
    Register a new user and start a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created (sets access_token and refresh_token cookies)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_signup_schema.load(payload)

    session = storage.get_session()
    if session.query(User).filter(User.email == data["email"]).first():
        abort(409, description="User already exists")

    user = User(
        name=data["name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
    )
    storage.new(user)
    storage.save()

    logger.info("signup user %s", user.id)
    return _session_response(user, 201)


@bp.post("/login")
def login():
    """
    Login: start a session and return the access token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (sets access_token and refresh_token cookies)
      401:
        description: Invalid email or password
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    session = storage.get_session()
    user: User | None = session.query(User).filter(User.email == data["email"]).first()
    if not user or not verify_password(data["password"], user.password_hash):
        abort(401, description="Invalid email or password")

    logger.info("login user %s", user.id)
    return _session_response(user, 200)


@bp.post("/refresh-token")
def refresh_token():
    """
    Exchange the refresh_token cookie for a new access token
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK (sets access_token cookie; refresh_token too when rotation is on)
      401:
        description: Missing, invalid or revoked refresh token
    """
    guard = get_guard()
    identity, refreshed = guard.refresh(refresh_cookie(request))

    response = jsonify(
        {
            "message": "Token refreshed successfully",
            "access_token": refreshed.access_token,
            "token_type": "bearer",
            "expires_in": guard.access_ttl_seconds,
        }
    )
    set_access_cookie(response, refreshed.access_token, guard.access_ttl_seconds)
    if refreshed.refresh_token:
        set_refresh_cookie(response, refreshed.refresh_token, guard.refresh_ttl_seconds)
    logger.info("refreshed access token for user %s", identity)
    return response


@bp.get("/profile")
@session_required()
def profile():
    """
    Current user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"user": user_out_schema.dump(g.current_user)}), 200


@bp.post("/logout")
@session_required()
def logout():
    """
    Logout: revoke the refresh token and clear both cookies
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    user = g.current_user
    get_guard().end_session(user.id)
    g.refreshed = None
    response = jsonify({"message": "Logged out successfully"})
    clear_auth_cookies(response)
    logger.info("logout user %s", user.id)
    return response
