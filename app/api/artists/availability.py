from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import select
import datetime

from ...extensions import db
from ...models import ArtistAvailability, ArtistProfile, ArtistTimeBlock, Design
from ...services import availability
from ...utils.auth_utils import role_required, token_required
from ...utils.validators import parse_bool, parse_date, parse_time

artist_availability_bp = Blueprint(
    "artist_availability", __name__, url_prefix="/api/artists"
)


def _serialize_rule(rule):
    return {
        "id": rule.id,
        "artist_id": rule.artist_id,
        "weekday": rule.weekday,
        "start_time": rule.start_time.isoformat() if rule.start_time else None,
        "end_time": rule.end_time.isoformat() if rule.end_time else None,
        "effective_from": rule.effective_from.isoformat() if rule.effective_from else None,
        "effective_to": rule.effective_to.isoformat() if rule.effective_to else None,
    }


def _serialize_block(block):
    return {
        "id": block.id,
        "start_at": block.start_at.isoformat(),
        "end_at": block.end_at.isoformat(),
        "reason": block.reason,
    }


def _date_range_args():
    """(start, end) from ?start_date&end_date, defaulting to the booking lookahead."""
    today = datetime.date.today()
    start = parse_date(request.args.get("start_date") or today)
    end_arg = request.args.get("end_date")
    if end_arg:
        end = parse_date(end_arg)
    else:
        end = start + datetime.timedelta(days=current_app.config["BOOKING_LOOKAHEAD_DAYS"])
    return start, end


@artist_availability_bp.route("/<int:artist_id>/availability", methods=["GET"])
def get_free_windows(artist_id):
    """
    Free time windows of an artist
    ---
    tags:
      - Availability
    parameters:
      - {in: path, name: artist_id, type: integer, required: true}
      - {in: query, name: start_date, type: string, format: date}
      - {in: query, name: end_date, type: string, format: date}
      - {in: query, name: include_bookings, type: boolean, default: true}
    responses:
      200:
        description: List of {date, start_time, end_time}
      400:
        description: Bad dates
      404:
        description: Artist not found
    """
    try:
        start, end = _date_range_args()
    except (ValueError, TypeError, OverflowError):
        return jsonify({"error": "Invalid 'start_date' or 'end_date' format (YYYY-MM-DD)."}), 400
    if end < start:
        return jsonify({"error": "'end_date' must not be before 'start_date'"}), 400

    if not db.session.get(ArtistProfile, artist_id):
        return jsonify({"error": "Artist not found"}), 404

    include_bookings = parse_bool(request.args.get("include_bookings"))
    windows = availability.get_artist_availability(
        artist_id,
        start,
        end,
        include_bookings=True if include_bookings is None else include_bookings,
    )
    return jsonify(windows)


@artist_availability_bp.route("/<int:artist_id>/availability/rules", methods=["GET"])
def get_availability_rules(artist_id):
    """
    GET /api/artists/<artist_id>/availability/rules
    Purpose: The artist's recurring weekly hours (weekday 0 = Sunday).
    """
    artist = db.session.get(ArtistProfile, artist_id)
    if not artist:
        return jsonify({"error": "Artist not found"}), 404

    rules = sorted(artist.availability, key=lambda r: (r.weekday, r.start_time))
    return jsonify([_serialize_rule(r) for r in rules])


@artist_availability_bp.route("/<int:artist_id>/available-dates", methods=["GET"])
def get_available_dates(artist_id):
    """
    GET /api/artists/<artist_id>/available-dates?start_date=&end_date=
    Purpose: Dates with at least one free window, for the wizard's date picker.
    """
    try:
        start, end = _date_range_args()
    except (ValueError, TypeError, OverflowError):
        return jsonify({"error": "Invalid 'start_date' or 'end_date' format (YYYY-MM-DD)."}), 400

    if not db.session.get(ArtistProfile, artist_id):
        return jsonify({"error": "Artist not found"}), 404

    return jsonify({"artist_id": artist_id, "dates": availability.available_dates(artist_id, start, end)})


@artist_availability_bp.route("/<int:artist_id>/slots", methods=["GET"])
def get_slots(artist_id):
    """
    GET /api/artists/<artist_id>/slots?date=YYYY-MM-DD&duration=MINUTES
    Purpose: Bookable slots on one date.

    Behavior:
    - duration defaults to the design's estimated hours when design_id is given,
      otherwise to one hour
    - slots start every SLOT_INCREMENT_MINUTES inside each free window
    """
    date_str = request.args.get("date")
    if not date_str:
        return jsonify({"error": "Missing required query parameter: 'date' (YYYY-MM-DD)"}), 400

    try:
        selected_date = parse_date(date_str)
        duration_str = request.args.get("duration")
        design_id = request.args.get("design_id", type=int)
        duration_minutes = int(duration_str) if duration_str else None
    except (ValueError, TypeError):
        return jsonify({"error": "Invalid 'date' or 'duration' format."}), 400

    if not db.session.get(ArtistProfile, artist_id):
        return jsonify({"error": "Artist not found"}), 404

    if duration_minutes is None:
        design = db.session.get(Design, design_id) if design_id else None
        duration_minutes = int(availability.slot_duration_for_design(design).total_seconds() // 60)
    if duration_minutes <= 0:
        return jsonify({"error": "'duration' must be a positive number of minutes"}), 400

    slots = availability.get_available_slots(artist_id, selected_date, duration_minutes)
    return jsonify({
        "artist_id": artist_id,
        "date": selected_date.isoformat(),
        "duration_minutes": duration_minutes,
        "slots": slots,
    })


@artist_availability_bp.route("/me/availability", methods=["PUT"])
@token_required
@role_required("artist")
def replace_availability():
    """
    Replace the signed-in artist's weekly hours
    ---
    tags:
      - Availability
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            rules:
              type: array
              items:
                type: object
                properties:
                  weekday: {type: integer, description: 0 = Sunday}
                  start_time: {type: string, example: "10:00"}
                  end_time: {type: string, example: "18:00"}
                  effective_from: {type: string, format: date}
                  effective_to: {type: string, format: date}
    responses:
      200:
        description: Rules saved
      400:
        description: A rule is invalid
    """
    try:
        data = request.get_json(force=True)
        raw_rules = data.get("rules")
        if not isinstance(raw_rules, list):
            return jsonify({"status": "error", "message": "'rules' must be a list"}), 400

        artist = g.current_user.artist_profile
        new_rules = []
        for index, raw in enumerate(raw_rules):
            try:
                weekday = int(raw.get("weekday"))
                start_time = parse_time(raw.get("start_time"))
                end_time = parse_time(raw.get("end_time"))
                effective_from = parse_date(raw["effective_from"]) if raw.get("effective_from") else None
                effective_to = parse_date(raw["effective_to"]) if raw.get("effective_to") else None
            except (AttributeError, TypeError, ValueError):
                return jsonify({"status": "error", "message": f"Rule {index + 1} is malformed"}), 400

            if not 0 <= weekday <= 6:
                return jsonify({"status": "error", "message": f"Rule {index + 1}: weekday must be 0-6 (0 = Sunday)"}), 400
            if start_time >= end_time:
                return jsonify({"status": "error", "message": f"Rule {index + 1}: start_time must be before end_time"}), 400
            if effective_from and effective_to and effective_to < effective_from:
                return jsonify({"status": "error", "message": f"Rule {index + 1}: effective_to is before effective_from"}), 400

            new_rules.append(
                ArtistAvailability(
                    weekday=weekday,
                    start_time=start_time,
                    end_time=end_time,
                    effective_from=effective_from,
                    effective_to=effective_to,
                )
            )

        artist.availability = new_rules
        artist.updated_at = datetime.datetime.now()
        db.session.commit()

        return jsonify({
            "status": "success",
            "message": "Availability saved",
            "rules": [_serialize_rule(r) for r in artist.availability],
        }), 200

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Availability update failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@artist_availability_bp.route("/me/time-blocks", methods=["GET"])
@token_required
@role_required("artist")
def list_time_blocks():
    blocks = db.session.scalars(
        select(ArtistTimeBlock)
        .where(ArtistTimeBlock.artist_id == g.current_user.id)
        .order_by(ArtistTimeBlock.start_at)
    ).all()
    return jsonify({"status": "success", "time_blocks": [_serialize_block(b) for b in blocks]}), 200


@artist_availability_bp.route("/me/time-blocks", methods=["POST"])
@token_required
@role_required("artist")
def add_time_block():
    """
    POST /api/artists/me/time-blocks
    Purpose: Block out a one-off period (holiday, guest spot, ...).
    Input: JSON { "start_at": ISO datetime, "end_at": ISO datetime, "reason": optional }
    """
    try:
        data = request.get_json(force=True)
        try:
            start_at = datetime.datetime.fromisoformat(data.get("start_at"))
            end_at = datetime.datetime.fromisoformat(data.get("end_at"))
        except (TypeError, ValueError):
            return jsonify({"status": "error", "message": "start_at and end_at must be ISO datetimes"}), 400
        if start_at >= end_at:
            return jsonify({"status": "error", "message": "start_at must be before end_at"}), 400

        block = ArtistTimeBlock(
            artist_id=g.current_user.id,
            start_at=start_at,
            end_at=end_at,
            reason=(data.get("reason") or "").strip() or None,
        )
        db.session.add(block)
        db.session.commit()
        return jsonify({"status": "success", "time_block": _serialize_block(block)}), 201

    except Exception as e:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@artist_availability_bp.route("/me/time-blocks/<int:block_id>", methods=["DELETE"])
@token_required
@role_required("artist")
def delete_time_block(block_id):
    try:
        block = db.session.get(ArtistTimeBlock, block_id)
        if not block or block.artist_id != g.current_user.id:
            return jsonify({"status": "error", "message": "Time block not found"}), 404

        db.session.delete(block)
        db.session.commit()
        return jsonify({"status": "success", "message": "Time block removed"}), 200

    except Exception as e:
        db.session.rollback()
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500
