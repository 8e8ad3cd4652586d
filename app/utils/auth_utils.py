from functools import wraps
from urllib.parse import quote
import datetime

import bcrypt
import jwt
from flask import current_app, g, jsonify, request

from app.extensions import db
from app.models import Profile

SESSION_PURPOSE = "session"
MAGIC_LINK_PURPOSE = "magic_link"


def hash_password(password: str) -> bytes:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())


def check_password(password: str, stored_hash) -> bool:
    if not stored_hash:
        return False
    if isinstance(stored_hash, str):
        stored_hash = stored_hash.encode("utf-8")
    return bcrypt.checkpw(password.encode("utf-8"), stored_hash)


def _encode(payload, lifetime):
    payload = dict(payload)
    payload["exp"] = datetime.datetime.now(datetime.timezone.utc) + lifetime
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")


def create_session_token(profile: Profile) -> str:
    return _encode(
        {
            "user_id": profile.id,
            "email": profile.email,
            "user_type": profile.user_type,
            "purpose": SESSION_PURPOSE,
        },
        datetime.timedelta(hours=current_app.config["JWT_EXPIRY_HOURS"]),
    )


def create_magic_link_token(email: str) -> str:
    return _encode(
        {"email": email, "purpose": MAGIC_LINK_PURPOSE},
        datetime.timedelta(minutes=current_app.config["MAGIC_LINK_EXPIRY_MINUTES"]),
    )


def decode_token(token: str, purpose: str = SESSION_PURPOSE) -> dict:
    """Raises jwt.InvalidTokenError (or a subclass) for bad, expired or misused tokens."""
    payload = jwt.decode(
        token, current_app.config["SECRET_KEY"], algorithms=["HS256"]
    )
    if payload.get("purpose") != purpose:
        raise jwt.InvalidTokenError("Token was issued for a different purpose")
    return payload


def signin_redirect():
    return f"/auth/signin?redirect={quote(request.full_path.rstrip('?'), safe='')}"


def profile_redirect(user_type):
    return f"/profile/create?type={user_type}"


def _auth_error(message):
    return (
        jsonify(
            {"status": "error", "message": message, "redirect_to": signin_redirect()}
        ),
        401,
    )


def token_required(f):
    """Resolve the Bearer token into g.current_user or answer 401."""

    @wraps(f)
    def decorated(*args, **kwargs):
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return _auth_error("Authentication required")

        token = header.split(" ", 1)[1].strip()
        try:
            payload = decode_token(token)
        except jwt.ExpiredSignatureError:
            return _auth_error("Session expired, please sign in again")
        except jwt.InvalidTokenError:
            return _auth_error("Invalid authentication token")

        profile = db.session.get(Profile, payload.get("user_id"))
        if not profile:
            return _auth_error("User no longer exists")

        g.current_user = profile
        return f(*args, **kwargs)

    return decorated


def has_role_profile(profile: Profile, user_type: str) -> bool:
    if profile.user_type != user_type:
        return False
    if user_type == "client":
        return profile.client_profile is not None
    if user_type == "artist":
        return profile.artist_profile is not None
    if user_type == "studio":
        return len(profile.studios) > 0
    return False


def role_required(user_type):
    """Must be stacked under @token_required. Answers 403 with a profile-creation hint."""

    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            profile = g.current_user
            if not has_role_profile(profile, user_type):
                return (
                    jsonify(
                        {
                            "status": "error",
                            "message": f"A {user_type} profile is required for this action",
                            "redirect_to": profile_redirect(user_type),
                        }
                    ),
                    403,
                )
            return f(*args, **kwargs)

        return decorated

    return decorator
