from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import select
import datetime

from ...extensions import db
from ...models import ACTIVE_BOOKING_STATUSES, Booking, Design
from ...utils.auth_utils import role_required, token_required
from ...utils.s3_utils import (
    STUDIO_BANNERS_FOLDER,
    STUDIO_LOGOS_FOLDER,
    StorageError,
    upload_image,
)
from ...utils.serializers import serialize_artist, serialize_booking, serialize_design, serialize_studio

studio_admin_bp = Blueprint("studio_admin", __name__, url_prefix="/api/studio-admin")


@studio_admin_bp.route("/dashboard", methods=["GET"])
@token_required
@role_required("studio")
def get_dashboard():
    """
    Studio owner dashboard
    ---
    tags:
      - Studio Admin
    security:
      - Bearer: []
    responses:
      200:
        description: Studio, active roster, designs and upcoming bookings
      403:
        description: Studio profile required
    """
    try:
        studio = g.current_user.studios[0]
        today = datetime.date.today()

        roster = [
            dict(serialize_artist(m.artist), role=m.role, start_date=m.start_date.isoformat() if m.start_date else None)
            for m in studio.studio_artists
            if m.is_active
        ]
        designs = db.session.scalars(
            select(Design)
            .where(Design.studio_id == studio.id)
            .order_by(Design.created_at.desc(), Design.id.desc())
        ).all()
        bookings = db.session.scalars(
            select(Booking)
            .where(
                Booking.studio_id == studio.id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                Booking.booking_date >= today,
            )
            .order_by(Booking.booking_date, Booking.start_time)
        ).all()

        return jsonify({
            "status": "success",
            "studio": serialize_studio(studio),
            "artists": roster,
            "designs": [serialize_design(d) for d in designs],
            "upcoming_bookings": [serialize_booking(b) for b in bookings],
            "stats": {
                "artist_count": len(roster),
                "design_count": len(designs),
                "pending_count": len([b for b in bookings if b.status == "pending"]),
                "confirmed_count": len([b for b in bookings if b.status == "confirmed"]),
            },
        }), 200

    except Exception as e:
        current_app.logger.error(f"Studio dashboard failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


def _upload_studio_image(folder, attribute):
    try:
        studio = g.current_user.studios[0]
        try:
            url, _ = upload_image(request.files.get("image_file"), folder, studio.id)
        except ValueError as e:
            return jsonify({"status": "error", "message": str(e)}), 400

        setattr(studio, attribute, url)
        studio.updated_at = datetime.datetime.now()
        db.session.commit()
        return jsonify({"status": "success", attribute: url}), 200

    except StorageError as e:
        db.session.rollback()
        current_app.logger.error(f"Studio {attribute} upload failed: {e}")
        return jsonify({"status": "error", "message": "Failed to upload image", "details": str(e)}), 500

    except Exception as e:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Failed to upload image", "details": str(e)}), 500


@studio_admin_bp.route("/logo", methods=["POST"])
@token_required
@role_required("studio")
def upload_logo():
    """
    Upload the studio logo
    ---
    tags:
      - Studio Admin
    consumes:
      - multipart/form-data
    security:
      - Bearer: []
    parameters:
      - {in: formData, name: image_file, type: file, required: true}
    responses:
      200:
        description: Logo stored
      400:
        description: Missing file or unsupported type
    """
    return _upload_studio_image(STUDIO_LOGOS_FOLDER, "logo_url")


@studio_admin_bp.route("/banner", methods=["POST"])
@token_required
@role_required("studio")
def upload_banner():
    return _upload_studio_image(STUDIO_BANNERS_FOLDER, "banner_url")
