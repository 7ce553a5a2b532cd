from dataclasses import dataclass

from jose import JWTError, jwt

from homekeep.core.config import settings


@dataclass(frozen=True)
class UserContext:
    """Opaque identity handed over by the auth provider."""
    user_id: str
    email: str | None = None
    phone: str | None = None


# ─── JWT tokens (issued by Supabase Auth) ──────────────
def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.algorithm],
            audience=settings.supabase_jwt_audience,
        )
    except JWTError:
        return None


def user_from_claims(claims: dict) -> UserContext | None:
    user_id = claims.get("sub")
    if not user_id:
        return None
    return UserContext(
        user_id=str(user_id),
        email=claims.get("email") or None,
        phone=claims.get("phone") or None,
    )
