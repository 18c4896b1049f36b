"""Bearer session authentication for the storage routes."""

from fastapi import Depends, Request

from filegate.core.errors import UnauthorizedError
from filegate.services.auth import AuthService, Principal
from filegate.services.storage import StorageService

BEARER_PREFIX = "Bearer "


def parse_bearer(header: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header.

    Anything without the exact prefix, or with nothing after it, is None.
    """
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage


def require_principal(
    request: Request, auth: AuthService = Depends(get_auth_service)
) -> Principal:
    session_id = parse_bearer(request.headers.get("Authorization"))
    if session_id is None:
        raise UnauthorizedError()

    username = auth.resolve_principal(session_id)

    request.state.session_id = session_id
    request.state.username = username
    return Principal(session_id=session_id, username=username)
