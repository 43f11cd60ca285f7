from __future__ import annotations

import math
from functools import wraps
from typing import Optional

from flask import g, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..core.constants import MAX_PAGE_LIMIT
from ..core.exceptions import AuthorizationError, ValidationError


def json_body() -> dict:
    """Request JSON as a dict; a body that is present but not a JSON object is a client error."""
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data(cache=True):
            raise ValidationError("Request body must be valid JSON")
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def success(status: int = 200, /, **payload):
    """JSON success envelope; status is positional so payload may carry a "status" key."""
    return jsonify({"success": True, **payload}), status


def failure(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def query_int(name: str, default: int, *, maximum: Optional[int] = MAX_PAGE_LIMIT) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if value < 1:
        raise ValidationError(f"{name} must be positive")
    if maximum is not None:
        value = min(value, maximum)
    return value


def query_bool(name: str) -> Optional[bool]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in {"1", "true", "yes"}


def pagination(*, page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": int(math.ceil(total / limit)) if limit else 1,
    }


def make_auth_required(auth_service):
    """Build the auth_required(*roles) decorator bound to an AuthService.

    Verifies the bearer token, reloads the user (deactivated accounts are
    rejected) and exposes it as g.current_user.
    """

    def auth_required(*roles):
        allowed = {getattr(r, "value", r) for r in roles}

        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                verify_jwt_in_request()
                current = auth_service.resolve(str(get_jwt_identity()))
                if allowed and current.role.value not in allowed:
                    raise AuthorizationError(f"Role '{current.role.value}' is not authorized to access this resource")
                g.current_user = current
                return view(*args, **kwargs)

            return wrapper

        return decorator

    return auth_required
