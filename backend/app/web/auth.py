"""Signed-cookie sessions for the back-office."""

import secrets
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, Response, status
from itsdangerous import BadSignature, URLSafeTimedSerializer

from backend.app.core.config import settings

SESSION_COOKIE = "admin_session"
SESSION_MAX_AGE = 60 * 60 * 12


@dataclass(frozen=True)
class AdminSession:
    username: str
    csrf: str


def get_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.session_secret, salt="admin-session")


def create_session_cookie(username: str) -> str:
    # A fresh CSRF token per login; forms echo it back as csrf_token.
    return get_serializer().dumps({"user": username, "csrf": secrets.token_urlsafe(16)})


def set_session_cookie(response: Response, value: str) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        value,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
        max_age=SESSION_MAX_AGE,
    )


def clear_session(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE)


def read_session(request: Request) -> AdminSession:
    cookie = request.cookies.get(SESSION_COOKIE)
    if not cookie:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        data = get_serializer().loads(cookie, max_age=SESSION_MAX_AGE)
    except BadSignature as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED) from exc
    if not data.get("user") or not data.get("csrf"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return AdminSession(username=data["user"], csrf=data["csrf"])


def get_csrf_token(request: Request) -> str:
    return read_session(request).csrf


def verify_csrf(request: Request, token: str) -> None:
    if not secrets.compare_digest(token, read_session(request).csrf):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)


def login_required(admin: AdminSession = Depends(read_session)) -> str:
    return admin.username
