from dataclasses import dataclass
from datetime import datetime, timedelta

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.time import ensure_utc, utcnow
from backend.app.models.admin import AdminLoginAttempt, AdminUser
from backend.app.services.errors import ServiceError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, password_hash: str) -> bool:
    return pwd_context.verify(plain, password_hash)


def normalize_username(username: str) -> str:
    return username.strip().lower()


@dataclass
class LoginThrottle:
    banned: bool
    banned_until: datetime | None = None
    failed_count: int = 0


async def list_admins(session: AsyncSession) -> list[AdminUser]:
    result = await session.execute(select(AdminUser).order_by(AdminUser.created_at.desc()))
    return list(result.scalars().all())


async def create_admin(session: AsyncSession, *, username: str, password: str) -> AdminUser:
    username = normalize_username(username)
    if not username or len(password) < 8:
        raise ServiceError("Username and a password of at least 8 characters are required.")
    admin = AdminUser(
        username=username,
        password_hash=hash_password(password),
        is_active=True,
        created_at=utcnow(),
    )
    session.add(admin)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise ServiceError(f"Admin {username} already exists.") from exc
    return admin


async def authenticate_admin(
    session: AsyncSession, *, username: str, password: str, ip: str | None = None
) -> AdminUser | None:
    result = await session.execute(
        select(AdminUser).where(
            AdminUser.username == normalize_username(username),
            AdminUser.is_active.is_(True),
        )
    )
    admin = result.scalar_one_or_none()
    if not admin or not verify_password(password, admin.password_hash):
        return None
    admin.last_login_at = utcnow()
    admin.last_login_ip = ip
    return admin


async def _attempt(session: AsyncSession, username: str, ip: str) -> AdminLoginAttempt | None:
    result = await session.execute(
        select(AdminLoginAttempt).where(
            AdminLoginAttempt.username == username, AdminLoginAttempt.ip == ip
        )
    )
    return result.scalar_one_or_none()


async def check_login_ban(session: AsyncSession, *, username: str, ip: str) -> LoginThrottle:
    attempt = await _attempt(session, username, ip)
    if not attempt or not attempt.banned_until:
        return LoginThrottle(banned=False, failed_count=attempt.failed_count if attempt else 0)
    banned_until = ensure_utc(attempt.banned_until)
    if banned_until > utcnow():
        return LoginThrottle(banned=True, banned_until=banned_until)
    # Ban expired: start counting again.
    attempt.banned_until = None
    attempt.failed_count = 0
    return LoginThrottle(banned=False)


async def record_login_failure(
    session: AsyncSession, *, username: str, ip: str, max_attempts: int, ban_minutes: int
) -> LoginThrottle:
    now = utcnow()
    window = timedelta(minutes=ban_minutes)
    attempt = await _attempt(session, username, ip)
    if not attempt:
        attempt = AdminLoginAttempt(username=username, ip=ip, failed_count=0, last_failed_at=now)
        session.add(attempt)
    elif ensure_utc(attempt.last_failed_at) < now - window:
        attempt.failed_count = 0
    attempt.failed_count += 1
    attempt.last_failed_at = now
    if attempt.failed_count >= max_attempts:
        attempt.banned_until = now + window
        attempt.failed_count = 0
        return LoginThrottle(banned=True, banned_until=attempt.banned_until)
    return LoginThrottle(banned=False, failed_count=attempt.failed_count)


async def clear_login_attempts(session: AsyncSession, *, username: str, ip: str) -> None:
    attempt = await _attempt(session, username, ip)
    if attempt:
        await session.delete(attempt)
