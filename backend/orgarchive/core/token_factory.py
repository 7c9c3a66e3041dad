"""Session tokens: HS256 JWTs minted at login and checked on every request.

Only identity goes into the token. Roles and grants are read from the
database per request, so permission edits apply without a new login.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

_ISSUER = "orgarchive"
_HEADER = {"alg": "HS256", "typ": "JWT"}


@dataclass(frozen=True)
class TokenPayload:
    sub: str
    username: str
    exp: datetime


def _b64(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _unb64(data: bytes) -> bytes:
    return base64.urlsafe_b64decode(data + b"=" * (-len(data) % 4))


def _sign(signing_input: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()


def create_token(
    subject: str,
    username: str,
    secret: str,
    algorithm: str = "HS256",
    expires_hours: int = 12,
) -> str:
    """Mint a token for user *subject*.

    Raises ValueError for any algorithm other than HS256.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    issued = int(time.time())
    claims = {
        "iss": _ISSUER,
        "sub": subject,
        "username": username,
        "iat": issued,
        "exp": issued + int(expires_hours * 3600),
    }
    signing_input = b".".join(
        _b64(json.dumps(part, separators=(",", ":")).encode()) for part in (_HEADER, claims)
    )
    return (signing_input + b"." + _b64(_sign(signing_input, secret))).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenPayload]:
    """Verify *token* and return its payload, or None when it is not acceptable.

    Rejected: wrong algorithm, malformed input, bad signature, foreign
    issuer, missing subject, expired.
    """
    if algorithm != "HS256" or token.count(".") != 2:
        return None
    header_b64, claims_b64, signature_b64 = token.encode().split(b".")
    try:
        signature = _unb64(signature_b64)
        claims = json.loads(_unb64(claims_b64))
    except (ValueError, TypeError):
        return None

    if not hmac.compare_digest(_sign(header_b64 + b"." + claims_b64, secret), signature):
        return None
    if not isinstance(claims, dict) or claims.get("iss") != _ISSUER or not claims.get("sub"):
        return None

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)) or exp < time.time():
        return None

    return TokenPayload(
        sub=str(claims["sub"]),
        username=str(claims.get("username", "")),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc),
    )
