from typing import List, Optional

import jwt
from pydantic import ValidationError

from ..config import settings
from ..errors import InvalidToken
from ..schemas.upload import UploadClaims


def verify_upload_token(
    token: str,
    secret: Optional[str] = None,
    algorithms: Optional[List[str]] = None,
    leeway: Optional[int] = None,
    require_exp: Optional[bool] = None,
) -> UploadClaims:
    """Check signature and expiry of an upload token and return its claims.

    Raises InvalidToken on any failure; nothing is accepted partially.
    """
    secret = secret if secret is not None else settings.jwt_secret
    algorithms = algorithms or [settings.jwt_algorithm]
    leeway = settings.jwt_leeway if leeway is None else leeway
    require_exp = settings.upload_token_require_exp if require_exp is None else require_exp

    options = {"require": ["exp"]} if require_exp else {}
    try:
        payload = jwt.decode(token, secret, algorithms=algorithms, leeway=leeway, options=options)
    except jwt.ExpiredSignatureError:
        raise InvalidToken("Upload token expired.", reason="expired")
    except jwt.InvalidSignatureError:
        raise InvalidToken("Invalid upload token signature.", reason="signature")
    except jwt.InvalidTokenError:
        raise InvalidToken("Malformed upload token.", reason="malformed")

    if not isinstance(payload, dict):
        raise InvalidToken("Malformed upload token.", reason="malformed")
    try:
        return UploadClaims(**payload)
    except (ValidationError, TypeError):
        raise InvalidToken("Malformed upload token.", reason="malformed")
