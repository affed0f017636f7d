from typing import Any

from fastapi import APIRouter, Depends, Response

from ..auth.deps import get_container, get_current_user
from ..config import RL_AUTH_LOGIN_LIMIT, RL_AUTH_REFRESH_LIMIT, RL_AUTH_SIGNUP_LIMIT, RL_WINDOW_SECONDS
from ..container import Container
from ..errors import ok
from ..schemas import LoginRequest, LogoutRequest, RefreshRequest, SignupRequest
from ..services.auth_service import public_user
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()

RL_AUTH_SIGNUP = rate_limit_dependency("auth_signup", RL_AUTH_SIGNUP_LIMIT, RL_WINDOW_SECONDS)
RL_AUTH_LOGIN = rate_limit_dependency("auth_login", RL_AUTH_LOGIN_LIMIT, RL_WINDOW_SECONDS)
RL_AUTH_REFRESH = rate_limit_dependency("auth_refresh", RL_AUTH_REFRESH_LIMIT, RL_WINDOW_SECONDS)


@router.post("/signup", status_code=201, dependencies=[RL_AUTH_SIGNUP])
def signup(payload: SignupRequest, container: Container = Depends(get_container)) -> dict[str, Any]:
    return ok(container.auth.signup(payload))


@router.post("/login", dependencies=[RL_AUTH_LOGIN])
def login(payload: LoginRequest, container: Container = Depends(get_container)) -> dict[str, Any]:
    return ok(container.auth.login(payload))


@router.post("/refresh", dependencies=[RL_AUTH_REFRESH])
def refresh(payload: RefreshRequest, container: Container = Depends(get_container)) -> dict[str, Any]:
    return ok(container.auth.refresh(payload.refresh_token))


@router.post("/logout", status_code=204)
def logout(
    payload: LogoutRequest | None = None,
    current_user: dict[str, Any] = Depends(get_current_user),
    container: Container = Depends(get_container),
) -> Response:
    container.auth.logout(payload.refresh_token if payload else None)
    return Response(status_code=204)


@router.get("/me")
def me(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return ok(public_user(current_user))
