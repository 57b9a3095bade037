from datetime import datetime, timezone
from typing import Optional

from jose import JWTError
from jose.jwt import get_unverified_claims

from coursehub.schemas.auth_schemas import AuthTokenPayload


def read_token_claims(token: Optional[str]) -> Optional[AuthTokenPayload]:
    """
    Read the claims of a bearer token without verifying its signature.
    The client never holds the signing key; the claims are only used to know
    when to stop sending the token. Opaque (non-JWT) tokens return None.
    """
    if not token:
        return None
    try:
        claims = get_unverified_claims(token)
    except JWTError:
        return None
    if not isinstance(claims, dict):
        return None
    return AuthTokenPayload(**claims)


def token_expired(token: Optional[str], now: Optional[datetime] = None) -> bool:
    payload = read_token_claims(token)
    if payload is None or payload.exp is None:
        return False
    now = now or datetime.now(timezone.utc)
    exp = payload.exp if payload.exp.tzinfo else payload.exp.replace(tzinfo=timezone.utc)
    return exp <= now
