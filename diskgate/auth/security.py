import secrets
from typing import Optional

from fastapi import Request
from fastapi.security import HTTPBasic
from passlib.context import CryptContext

from ..config import Settings
from ..errors import NotAuthorized


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_basic = HTTPBasic(auto_error=False)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def credentials_valid(username: Optional[str], password: Optional[str], settings: Settings) -> bool:
    # Browsing stays closed until credentials are configured
    if not settings.browse_username or not settings.browse_password_hash:
        return False
    if username is None or password is None:
        return False
    user_ok = secrets.compare_digest(username.encode("utf-8"), settings.browse_username.encode("utf-8"))
    pass_ok = verify_password(password, settings.browse_password_hash)
    return user_ok and pass_ok


async def check_browse_auth(request: Request, settings: Settings) -> None:
    """Pass/fail gate in front of directory listings. Raises NotAuthorized."""
    creds = await http_basic(request)
    if creds is None or not credentials_valid(creds.username, creds.password, settings):
        raise NotAuthorized()
