from jose import jwt, JWTError
from fastapi import HTTPException
import os

from app.core.config import JWT_ALGORITHM
from app.models.enums import Actor

CALLER_ROLES = {Actor.DRIVER.value, Actor.PARTNER.value, Actor.ADMIN.value}


def decode_token(token: str):
    try:
        payload = jwt.decode(
            token,
            os.getenv("JWT_SECRET"),
            algorithms=[JWT_ALGORITHM]
        )

        if "sub" not in payload or "role" not in payload:
            raise HTTPException(status_code=401, detail="Invalid token payload")

        return payload

    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def resolve_caller(token: str):
    """Return (user_id, Actor) for the bearer of ``token``."""
    payload = decode_token(token)

    if payload["role"] not in CALLER_ROLES:
        raise HTTPException(status_code=401, detail="Invalid role")

    return payload["sub"], Actor(payload["role"])
