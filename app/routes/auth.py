from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
import jwt

from ..extensions import db
from ..models import Profile
from ..services.email_service import email_service
from ..utils.auth_utils import (
    MAGIC_LINK_PURPOSE,
    check_password,
    create_magic_link_token,
    create_session_token,
    decode_token,
    has_role_profile,
    hash_password,
    token_required,
)
from ..utils.validators import is_valid_email

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _normalize_email(value):
    return (value or "").strip().lower()


def _next_path(profile):
    """Where the web client should send a freshly signed-in user."""
    if not profile.user_type:
        return "/profile/create"
    if not has_role_profile(profile, profile.user_type):
        return f"/profile/create/{profile.user_type}"
    return "/dashboard"


def _profile_payload(profile):
    return {
        "id": profile.id,
        "email": profile.email,
        "full_name": profile.full_name,
        "phone": profile.phone,
        "avatar_url": profile.avatar_url,
        "user_type": profile.user_type,
        "is_admin": profile.is_admin,
        "has_role_profile": (
            has_role_profile(profile, profile.user_type) if profile.user_type else False
        ),
    }


@auth_bp.route("/signup", methods=["POST"])
def signup_user():
    """
    Register with email and password
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [email, password]
          properties:
            email:
              type: string
            password:
              type: string
            full_name:
              type: string
    responses:
      201:
        description: Profile created, session token returned
      400:
        description: Missing or invalid fields, or email already registered
    """
    try:
        data = request.get_json(force=True)
        email = _normalize_email(data.get("email"))
        password = data.get("password") or ""
        full_name = (data.get("full_name") or "").strip() or None

        if not email or not password:
            return jsonify({
                "status": "error",
                "message": "Email and password are required"
            }), 400

        if not is_valid_email(email):
            return jsonify({
                "status": "error",
                "message": "Please enter a valid email address"
            }), 400

        if len(password) < 8:
            return jsonify({
                "status": "error",
                "message": "Password must be at least 8 characters"
            }), 400

        existing = db.session.scalar(select(Profile).where(Profile.email == email))
        if existing:
            return jsonify({
                "status": "error",
                "message": "Email already exists"
            }), 400

        profile = Profile(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
        )
        db.session.add(profile)
        db.session.commit()

        return jsonify({
            "status": "success",
            "message": "User registered successfully",
            "token": create_session_token(profile),
            "user": _profile_payload(profile),
            "next": _next_path(profile),
        }), 201

    except IntegrityError as e:
        db.session.rollback()
        return jsonify({
            "status": "error",
            "message": "Database integrity error",
            "details": str(e.orig)
        }), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Signup failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@auth_bp.route("/login", methods=["POST"])
def login_user():
    """
    Sign in with email and password
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Session token and where to go next
      401:
        description: Invalid credentials
    """
    try:
        data = request.get_json(force=True)
        email = _normalize_email(data.get("email"))
        password = data.get("password")

        if not email or not password:
            return jsonify({
                "status": "error",
                "message": "Email and password required"
            }), 400

        user = db.session.scalar(select(Profile).where(Profile.email == email))
        if not user or not check_password(password, user.password_hash):
            return jsonify({
                "status": "error",
                "message": "Invalid credentials"
            }), 401

        return jsonify({
            "status": "success",
            "message": "Login successful",
            "token": create_session_token(user),
            "user": _profile_payload(user),
            "next": _next_path(user),
        }), 200

    except Exception as e:
        current_app.logger.error(f"Login failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@auth_bp.route("/magic-link", methods=["POST"])
def request_magic_link():
    """
    POST /api/auth/magic-link
    Purpose: Email a one-time sign-in link.
    Input: JSON { "email": str, "redirect": optional path }

    Behavior:
    - Answers the same way whether or not the email is registered
    - The profile itself is created when the link is verified
    """
    try:
        data = request.get_json(force=True)
        email = _normalize_email(data.get("email"))
        redirect_path = data.get("redirect") or "/dashboard"

        if not is_valid_email(email):
            return jsonify({
                "status": "error",
                "message": "Please enter a valid email address"
            }), 400

        # only relative paths, so the link cannot bounce users off-site
        if not redirect_path.startswith("/") or redirect_path.startswith("//"):
            redirect_path = "/dashboard"

        token = create_magic_link_token(email)
        result = email_service.send_magic_link(email, token, redirect_path)
        if not result.get("success"):
            current_app.logger.warning(f"Magic link email to {email} failed: {result.get('error')}")

        return jsonify({
            "status": "success",
            "message": "Check your email for a sign-in link"
        }), 200

    except Exception as e:
        current_app.logger.error(f"Magic link request failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@auth_bp.route("/magic-link/verify", methods=["POST"])
def verify_magic_link():
    """
    POST /api/auth/magic-link/verify
    Purpose: Exchange a magic-link token for a session token.
    Input: JSON { "token": str }

    Behavior:
    - Creates a password-less profile on first sign-in
    - Expired or tampered tokens answer 401
    """
    try:
        data = request.get_json(force=True)
        token = data.get("token")
        if not token:
            return jsonify({"status": "error", "message": "Token is required"}), 400

        try:
            payload = decode_token(token, purpose=MAGIC_LINK_PURPOSE)
        except jwt.ExpiredSignatureError:
            return jsonify({
                "status": "error",
                "message": "This sign-in link has expired, please request a new one"
            }), 401
        except jwt.InvalidTokenError:
            return jsonify({"status": "error", "message": "Invalid sign-in link"}), 401

        email = _normalize_email(payload.get("email"))
        profile = db.session.scalar(select(Profile).where(Profile.email == email))
        created = False
        if not profile:
            profile = Profile(email=email)
            db.session.add(profile)
            db.session.commit()
            created = True

        return jsonify({
            "status": "success",
            "message": "Signed in",
            "token": create_session_token(profile),
            "user": _profile_payload(profile),
            "created": created,
            "next": _next_path(profile),
        }), 200

    except IntegrityError as e:
        db.session.rollback()
        return jsonify({
            "status": "error",
            "message": "Database integrity error",
            "details": str(e.orig)
        }), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Magic link verification failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@auth_bp.route("/me", methods=["GET"])
@token_required
def get_current_user():
    """
    Current signed-in profile
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Profile of the token holder
      401:
        description: Missing or invalid token (includes redirect_to)
    """
    profile = g.current_user
    return jsonify({
        "status": "success",
        "user": _profile_payload(profile),
        "next": _next_path(profile),
    }), 200


@auth_bp.route("/check-email", methods=["GET"])
def check_email():
    email = _normalize_email(request.args.get("email"))
    if not email:
        return jsonify({"status": "error", "message": "Email is required"}), 400

    exists = db.session.scalar(select(Profile.id).where(Profile.email == email)) is not None
    return jsonify({"status": "success", "exists": exists}), 200
