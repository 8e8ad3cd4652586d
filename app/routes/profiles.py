import datetime

from flask import Blueprint, jsonify, request, current_app, g
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from ..models import ArtistProfile, ClientProfile, Studio, USER_TYPES
from ..services.profile_forms import (
    validate_artist_form,
    validate_client_form,
    validate_studio_form,
)
from ..utils.auth_utils import has_role_profile, token_required
from ..utils.s3_utils import AVATARS_FOLDER, StorageError, upload_image
from ..utils.serializers import serialize_artist, serialize_studio

profiles_bp = Blueprint("profiles", __name__, url_prefix="/api/profiles")


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
    return value or None


def _claim_type(profile, user_type):
    """Set user_type if unset. Returns an error response when the profile already has another role."""
    if profile.user_type and profile.user_type != user_type:
        return (
            jsonify(
                {
                    "status": "error",
                    "message": f"This account is registered as a {profile.user_type}",
                }
            ),
            409,
        )
    profile.user_type = user_type
    return None


def _validation_error(errors):
    return (
        jsonify({"status": "error", "message": "Please fix the highlighted fields", "errors": errors}),
        400,
    )


def _client_payload(client):
    if not client:
        return None
    return {
        "address": client.address,
        "city": client.city,
        "state": client.state,
        "postal_code": client.postal_code,
        "country": client.country,
        "preferences": client.preferences,
    }


@profiles_bp.route("/me", methods=["GET"])
@token_required
def get_my_profile():
    """
    GET /api/profiles/me
    Purpose: The signed-in profile together with its role profile.

    Behavior:
    - client: client_profile block
    - artist: artist_profile block
    - studio: the owned studio
    """
    profile = g.current_user
    studio = profile.studios[0] if profile.studios else None
    return jsonify({
        "status": "success",
        "profile": {
            "id": profile.id,
            "email": profile.email,
            "full_name": profile.full_name,
            "phone": profile.phone,
            "avatar_url": profile.avatar_url,
            "user_type": profile.user_type,
            "is_admin": profile.is_admin,
        },
        "client_profile": _client_payload(profile.client_profile),
        "artist_profile": serialize_artist(profile.artist_profile) if profile.artist_profile else None,
        "studio": serialize_studio(studio) if studio else None,
    }), 200


@profiles_bp.route("/type", methods=["POST"])
@token_required
def select_profile_type():
    """
    Choose which kind of profile to create
    ---
    tags:
      - Profiles
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            user_type:
              type: string
              enum: [client, artist, studio]
    responses:
      200:
        description: Type saved, with the next page for the web client
      400:
        description: Unknown type
      409:
        description: The account already completed another role
    """
    try:
        data = request.get_json(force=True)
        user_type = (data.get("user_type") or "").strip().lower()
        if user_type not in USER_TYPES:
            return jsonify({
                "status": "error",
                "message": f"user_type must be one of {', '.join(USER_TYPES)}"
            }), 400

        profile = g.current_user
        # switching is allowed until the current role's profile is filled in
        if (
            profile.user_type
            and profile.user_type != user_type
            and has_role_profile(profile, profile.user_type)
        ):
            return jsonify({
                "status": "error",
                "message": f"This account is registered as a {profile.user_type}"
            }), 409

        profile.user_type = user_type
        profile.updated_at = datetime.datetime.now()
        db.session.commit()

        next_path = (
            "/dashboard"
            if has_role_profile(profile, user_type)
            else f"/profile/create/{user_type}"
        )
        return jsonify({"status": "success", "user_type": user_type, "next": next_path}), 200

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Profile type update failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@profiles_bp.route("/client", methods=["PUT"])
@token_required
def save_client_profile():
    """
    Create or update the client profile
    ---
    tags:
      - Profiles
    security:
      - Bearer: []
    responses:
      200:
        description: Saved
      400:
        description: Field errors keyed by field name
    """
    try:
        data = request.get_json(force=True)
        errors = validate_client_form(data)
        if errors:
            return _validation_error(errors)

        profile = g.current_user
        conflict = _claim_type(profile, "client")
        if conflict:
            return conflict

        now = datetime.datetime.now()
        profile.full_name = _clean(data.get("full_name"))
        profile.phone = _clean(data.get("phone"))
        profile.updated_at = now

        client = profile.client_profile
        if not client:
            client = ClientProfile(id=profile.id)
            db.session.add(client)
            profile.client_profile = client
        client.address = _clean(data.get("address"))
        client.city = _clean(data.get("city"))
        client.state = _clean(data.get("state"))
        client.postal_code = _clean(data.get("postal_code"))
        client.country = _clean(data.get("country"))
        if "preferences" in data:
            client.preferences = data.get("preferences")
        client.updated_at = now

        db.session.commit()
        return jsonify({
            "status": "success",
            "message": "Client profile saved",
            "client_profile": _client_payload(client),
            "next": "/dashboard",
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
        current_app.logger.error(f"Client profile save failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@profiles_bp.route("/artist", methods=["PUT"])
@token_required
def save_artist_profile():
    """
    Create or update the artist profile
    ---
    tags:
      - Profiles
    security:
      - Bearer: []
    responses:
      200:
        description: Saved
      400:
        description: Field errors keyed by field name
    """
    try:
        data = request.get_json(force=True)
        errors = validate_artist_form(data)
        if errors:
            return _validation_error(errors)

        profile = g.current_user
        conflict = _claim_type(profile, "artist")
        if conflict:
            return conflict

        now = datetime.datetime.now()
        profile.full_name = _clean(data.get("full_name"))
        if "phone" in data:
            profile.phone = _clean(data.get("phone"))
        profile.updated_at = now

        artist = profile.artist_profile
        if not artist:
            artist = ArtistProfile(id=profile.id, is_independent=True)
            db.session.add(artist)
            profile.artist_profile = artist

        artist.artist_name = _clean(data.get("artist_name"))
        artist.bio = _clean(data.get("bio"))
        years = data.get("years_experience")
        artist.years_experience = int(years) if years not in (None, "") else None
        artist.portfolio_url = _clean(data.get("portfolio_url"))
        artist.instagram_handle = _clean(data.get("instagram_handle"))
        artist.city = _clean(data.get("city"))
        artist.state = _clean(data.get("state"))
        artist.postal_code = _clean(data.get("postal_code"))
        artist.country = _clean(data.get("country"))
        artist.latitude = data.get("latitude")
        artist.longitude = data.get("longitude")
        artist.availability_notice = _clean(data.get("availability_notice"))
        if "is_independent" in data:
            artist.is_independent = bool(data.get("is_independent"))
        artist.updated_at = now

        db.session.commit()
        return jsonify({
            "status": "success",
            "message": "Artist profile saved",
            "artist_profile": serialize_artist(artist),
            "next": "/dashboard",
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
        current_app.logger.error(f"Artist profile save failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@profiles_bp.route("/studio", methods=["PUT"])
@token_required
def save_studio_profile():
    """
    Create or update the studio owned by the signed-in user
    ---
    tags:
      - Profiles
    security:
      - Bearer: []
    responses:
      200:
        description: Saved (created on first call)
      400:
        description: Field errors keyed by field name
    """
    try:
        data = request.get_json(force=True)
        errors = validate_studio_form(data)
        if errors:
            return _validation_error(errors)

        profile = g.current_user
        conflict = _claim_type(profile, "studio")
        if conflict:
            return conflict

        now = datetime.datetime.now()
        studio = profile.studios[0] if profile.studios else None
        created = studio is None
        if created:
            studio = Studio(name=_clean(data.get("name")), creator=profile)
            db.session.add(studio)

        studio.name = _clean(data.get("name"))
        studio.description = _clean(data.get("description"))
        studio.address = _clean(data.get("address"))
        studio.city = _clean(data.get("city"))
        studio.state = _clean(data.get("state"))
        studio.postal_code = _clean(data.get("postal_code"))
        studio.country = _clean(data.get("country"))
        studio.latitude = data.get("latitude")
        studio.longitude = data.get("longitude")
        studio.contact_email = _clean(data.get("contact_email"))
        studio.contact_phone = _clean(data.get("contact_phone"))
        studio.website = _clean(data.get("website"))
        studio.instagram_handle = _clean(data.get("instagram_handle"))
        studio.updated_at = now
        profile.updated_at = now

        db.session.commit()
        return jsonify({
            "status": "success",
            "message": "Studio created" if created else "Studio updated",
            "studio": serialize_studio(studio),
            "next": "/studio-admin",
        }), 201 if created else 200

    except IntegrityError as e:
        db.session.rollback()
        return jsonify({
            "status": "error",
            "message": "Database integrity error",
            "details": str(e.orig)
        }), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Studio profile save failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@profiles_bp.route("/avatar", methods=["POST"])
@token_required
def upload_avatar():
    """
    Upload a profile picture
    ---
    tags:
      - Profiles
    consumes:
      - multipart/form-data
    security:
      - Bearer: []
    parameters:
      - in: formData
        name: image_file
        type: file
        required: true
    responses:
      200:
        description: Avatar stored, URL returned
      400:
        description: Missing file or unsupported image type
    """
    try:
        profile = g.current_user
        try:
            url, _ = upload_image(request.files.get("image_file"), AVATARS_FOLDER, profile.id)
        except ValueError as e:
            return jsonify({"status": "error", "message": str(e)}), 400

        profile.avatar_url = url
        profile.updated_at = datetime.datetime.now()
        db.session.commit()
        return jsonify({"status": "success", "avatar_url": url}), 200

    except StorageError as e:
        db.session.rollback()
        current_app.logger.error(f"Avatar upload failed: {e}")
        return jsonify({"status": "error", "message": "Failed to upload image", "details": str(e)}), 500

    except Exception as e:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Failed to upload image", "details": str(e)}), 500
