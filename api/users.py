from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, abort

from models import storage
from models.user import User
from models.schemas.user import RoleUpdateSchema, UserOutSchema
from utils.decorators import privileged_required
from utils.guard import get_guard

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)

role_update_schema = RoleUpdateSchema()
user_out_schema = UserOutSchema()


def _get_user_or_404(user_id: str) -> User:
    user = storage.get(User, user_id)
    if not user:
        abort(404)
    return user


@bp.put("/users/<user_id>/role")
@privileged_required()
def set_role(user_id: str):
    """
    Admin-only: set the role of a user.
    Body: { "role": "admin" | "user" }
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             role: { type: string }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    payload = request.get_json(silent=True) or {}
    data = role_update_schema.load(payload)

    user = _get_user_or_404(user_id)
    user.role = data["role"]
    user.save()
    logger.info("set role of user %s to %s", user.id, user.role)
    return jsonify({"data": user_out_schema.dump(user)}), 200


@bp.delete("/users/<user_id>/session")
@privileged_required()
def revoke_session(user_id: str):
    """
    Admin-only: revoke a user's refresh token, forcing a new login
    once the current access token runs out.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
    responses:
      204: { description: Revoked }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    user = _get_user_or_404(user_id)
    get_guard().end_session(user.id)
    logger.info("revoked session of user %s", user.id)
    return ("", 204)
