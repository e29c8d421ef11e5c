from flask import Blueprint

from utils.guard import get_guard

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            session_store:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
    """
    store_ok = get_guard().store.ping()
    return {
        "status": "ok" if store_ok else "degraded",
        "session_store": "ok" if store_ok else "unreachable",
        "version": "1.0.0",
    }, 200
