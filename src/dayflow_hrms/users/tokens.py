from __future__ import annotations

from flask_jwt_extended import create_access_token

from .model import User


def issue_access_token(user: User) -> str:
    """Signed JWT: identity is the user id, the role travels as an extra claim.

    Expiry comes from JWT_ACCESS_TOKEN_EXPIRES on the app config.
    """
    return create_access_token(identity=user.user_id, additional_claims={"role": user.role.value})
