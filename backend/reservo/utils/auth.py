from datetime import datetime, timedelta, timezone
from typing import Sequence

import jwt
from jwt import InvalidTokenError

ROLE_CLAIM = "user_role"


def create_access_token(
    *,
    user_id: str,
    secret: str,
    role: str = "user",
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=30))
    payload = {"sub": user_id, ROLE_CLAIM: role, "iat": now, "exp": exp}
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
) -> tuple[str, str]:
    """Return (subject, role) from a signed token. Raises ValueError when unusable."""
    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms))
    except InvalidTokenError as exc:  # includes ExpiredSignatureError
        raise ValueError("invalid token") from exc

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        raise ValueError("token missing sub")
    role = payload.get(ROLE_CLAIM) or "user"
    if not isinstance(role, str):
        raise ValueError("token role claim is not a string")
    return sub, role
