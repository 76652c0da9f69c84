from typing import Optional

from .errors import AuthenticationError, PermissionDeniedError
from .models import User

def bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

def current_user(backend, authorization: Optional[str]) -> User:
    """Resolve an Authorization header to the signed-in user or raise AuthenticationError."""
    token = bearer_token(authorization)
    if not token:
        raise AuthenticationError("Sign in required.")
    row = backend.user_for_token(token)
    if not row:
        raise AuthenticationError("Session expired or invalid token.")
    return User.from_row(row)

def require_admin(user: User) -> User:
    if not user.is_admin:
        raise PermissionDeniedError("Administrator access required.")
    return user
