from __future__ import annotations
from functools import wraps
from flask import request, g, after_this_request
from utils.exceptions import Forbidden
from utils.guard import apply_refreshed, get_guard


def session_required():
    """
    Run the session guard before the view. The resolved user lands on
    g.current_user; a silently refreshed access token is written back on
    the response.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            guard = get_guard()
            result = guard.authenticate(request)
            g.current_user = result.user
            g.refreshed = result.refreshed
            if result.refreshed is not None:

                @after_this_request
                def _write_back(response):
                    # the view may drop the refreshed credential (logout)
                    if g.get("refreshed") is None:
                        return response
                    return apply_refreshed(response, g.refreshed, guard)

            return fn(*args, **kwargs)

        return wrapper

    return decorator


def privileged_required():
    """
    Session guard plus a role check: 403 unless the user is an admin.
    """
    def decorator(fn):
        @wraps(fn)
        @session_required()
        def wrapper(*args, **kwargs):
            if not getattr(g.current_user, "is_privileged", False):
                raise Forbidden("Forbidden - Admin access required")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
