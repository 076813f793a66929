import os
import jwt
import time
from dataclasses import dataclass
from typing import Dict, Optional
from fastapi import HTTPException, Request

JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXP_DELTA_SECONDS = os.getenv("JWT_EXP_DELTA_SECONDS", "3600")


@dataclass(frozen=True)
class Actor:
    """The signed-in user a request acts on behalf of."""
    id: str
    email: Optional[str] = None


def token_response(token: str):
    return {
        "access_token": token
    }


def sign_jwt(user_id: str, email: Optional[str] = None) -> Dict[str, str]:
    """Generate a JWT token for a given user ID."""
    payload = {
        "user_id": str(user_id),
        "email": email,
        "expires": time.time() + int(JWT_EXP_DELTA_SECONDS)
    }
    token = jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)
    return token_response(token)


def decode_jwt(token: str) -> Optional[dict]:
    """Decode a JWT token and return the payload if valid, else None."""
    try:
        decoded_token = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    if decoded_token.get("expires", 0) >= time.time():
        return decoded_token
    return None


def get_current_actor(request: Request) -> Optional[Actor]:
    """Actor from the Bearer token in the request headers, or None."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None

    payload = decode_jwt(auth_header.split(" ", 1)[1].strip())
    if not payload or not payload.get("user_id"):
        return None

    return Actor(id=str(payload["user_id"]), email=payload.get("email"))


def require_actor(request: Request) -> Actor:
    """FastAPI dependency: the current actor, or 401."""
    actor = get_current_actor(request)
    if actor is None:
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")
    return actor
