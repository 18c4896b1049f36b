from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from filegate.core.errors import UnauthorizedError
from filegate.core.security import get_auth_service, parse_bearer
from filegate.services.auth import AVAILABLE, AuthService

router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_HEADER = "X-Session-ID"


class RegisterRequest(BaseModel):
    email: str = ""
    password: str = ""
    username: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


# --- check if a username can still be registered ---
@router.get("/username")
def username(username: str = "", auth: AuthService = Depends(get_auth_service)):
    status = auth.check_username(username)
    if status == AVAILABLE:
        return JSONResponse({"detail": "username available"}, status_code=200)
    return JSONResponse({"detail": f"username {status}"}, status_code=409)


@router.post("/register", status_code=201)
def register(data: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    auth.register(data.email, data.password, data.username)
    return {"detail": "user created"}


@router.post("/login")
def login(
    data: LoginRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    agent = request.headers.get("User-Agent", "")
    ip = request.client.host if request.client else ""

    session_id = auth.login(data.email, data.password, agent, ip)

    return JSONResponse(
        {"session_id": session_id}, headers={SESSION_HEADER: session_id}
    )


@router.post("/logout")
def logout(request: Request, auth: AuthService = Depends(get_auth_service)):
    session_id = parse_bearer(request.headers.get("Authorization"))
    if session_id is None:
        raise UnauthorizedError()
    auth.logout(session_id)
    return {"detail": "logout success"}


@router.get("/me")
def me(session_id: str = "", auth: AuthService = Depends(get_auth_service)):
    return auth.describe(session_id)


# --- development listings, mounted only when settings.dev is on ---
dev_router = APIRouter(prefix="/auth", tags=["dev"])


@dev_router.get("/users")
def list_users(auth: AuthService = Depends(get_auth_service)):
    return auth.list_users()


@dev_router.get("/sessions")
def list_sessions(auth: AuthService = Depends(get_auth_service)):
    return auth.list_sessions()
