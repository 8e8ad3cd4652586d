from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import select
import datetime

from ...extensions import db
from ...models import ArtistProfile, Booking, Design
from ...services import booking_service
from ...services.booking_service import BookingError
from ...services.booking_wizard import next_step, validate_wizard_step
from ...utils.auth_utils import role_required, token_required
from ...utils.formatting import money
from ...utils.serializers import serialize_booking

bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


def _booking_error(e):
    body = {"status": "error", "message": e.message}
    if e.errors:
        body["errors"] = e.errors
    return jsonify(body), e.status_code


def _load_visible_booking(booking_id):
    """(booking, error_response) for a booking the current user takes part in."""
    booking = db.session.get(Booking, booking_id)
    if not booking:
        return None, (jsonify({"status": "error", "message": "Booking not found"}), 404)
    if not booking_service.can_view_booking(booking, g.current_user):
        return None, (jsonify({"status": "error", "message": "You do not have access to this booking"}), 403)
    return booking, None


def _filter_by_when(query, when):
    today = datetime.date.today()
    if when == "upcoming":
        return query.where(Booking.booking_date >= today).order_by(
            Booking.booking_date.asc(), Booking.start_time.asc()
        )
    if when == "past":
        return query.where(Booking.booking_date < today).order_by(
            Booking.booking_date.desc(), Booking.start_time.desc()
        )
    return query.order_by(Booking.booking_date.desc(), Booking.start_time.desc())


@bookings_bp.route("/wizard/validate", methods=["POST"])
def validate_wizard():
    """
    Validate one step of the booking wizard
    ---
    tags:
      - Bookings
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            step: {type: integer, enum: [1, 2, 3]}
            booking_date: {type: string, format: date}
            start_time: {type: string}
            end_time: {type: string}
            design_id: {type: integer}
            notes: {type: string}
            deposit_amount: {type: number}
            total_price: {type: number}
            payment_method: {type: string}
    responses:
      200:
        description: "{valid, errors, next_step}"
    """
    data = request.get_json(force=True) or {}
    try:
        step = int(data.get("step", 1))
    except (TypeError, ValueError):
        return jsonify({"status": "error", "message": "step must be 1, 2 or 3"}), 400

    errors = validate_wizard_step(step, data)
    return jsonify({
        "valid": not errors,
        "errors": errors,
        "next_step": next_step(step, errors),
    }), 200


@bookings_bp.route("/quote", methods=["GET"])
def get_quote():
    """
    GET /api/bookings/quote?artist_id=&design_id=
    Purpose: Prices the wizard shows on the details step.

    Behavior:
    - With a design: its price, and its deposit or DEFAULT_DEPOSIT_RATE of the price
    - Without one (custom work): no preset prices, the client proposes them
    """
    artist_id = request.args.get("artist_id", type=int)
    design_id = request.args.get("design_id", type=int)

    artist = db.session.get(ArtistProfile, artist_id) if artist_id else None
    if not artist:
        return jsonify({"status": "error", "message": "Artist not found"}), 404

    if not design_id:
        return jsonify({
            "status": "success",
            "is_custom": True,
            "total_price": None,
            "deposit_amount": None,
            "studio_id": artist.primary_studio_id,
        }), 200

    design = db.session.get(Design, design_id)
    if not design or design.artist_id != artist.id:
        return jsonify({"status": "error", "message": "Design not found"}), 404

    total, deposit = booking_service.design_prices(
        design, current_app.config["DEFAULT_DEPOSIT_RATE"]
    )
    return jsonify({
        "status": "success",
        "is_custom": False,
        "design_id": design.id,
        "total_price": money(total),
        "deposit_amount": money(deposit),
        "estimated_hours": design.estimated_hours,
        "studio_id": design.studio_id or artist.primary_studio_id,
    }), 200


@bookings_bp.route("", methods=["POST"])
@token_required
@role_required("client")
def create_booking():
    """
    Book a slot and pay the deposit
    ---
    tags:
      - Bookings
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [artist_id, booking_date, start_time, end_time]
          properties:
            artist_id: {type: integer}
            studio_id: {type: integer}
            design_id: {type: integer}
            booking_date: {type: string, format: date}
            start_time: {type: string, example: "14:00"}
            end_time: {type: string, example: "16:00"}
            total_price: {type: number}
            deposit_amount: {type: number}
            notes: {type: string}
            payment_intent_id: {type: string}
    responses:
      201:
        description: Booking created (confirmed for designs, pending for custom work)
      400:
        description: Invalid details
      403:
        description: Client profile required
      404:
        description: Artist, design or studio not found
      409:
        description: Slot taken, design unavailable or payment already used
    """
    try:
        data = request.get_json(force=True)
        if not data.get("artist_id"):
            return jsonify({"status": "error", "message": "artist_id is required"}), 400

        booking = booking_service.create_booking_with_payment(
            client_id=g.current_user.id,
            artist_id=data.get("artist_id"),
            booking_date=data.get("booking_date"),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            design_id=data.get("design_id"),
            studio_id=data.get("studio_id"),
            total_price=data.get("total_price"),
            deposit_amount=data.get("deposit_amount"),
            notes=(data.get("notes") or "").strip() or None,
            payment_intent_id=data.get("payment_intent_id"),
        )
        return jsonify({
            "status": "success",
            "message": "Booking created",
            "booking": serialize_booking(booking),
        }), 201

    except BookingError as e:
        db.session.rollback()
        return _booking_error(e)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Booking creation failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@bookings_bp.route("/<int:booking_id>", methods=["GET"])
@token_required
def get_booking(booking_id):
    booking, error = _load_visible_booking(booking_id)
    if error:
        return error
    return jsonify({"status": "success", "booking": serialize_booking(booking)}), 200


@bookings_bp.route("/mine", methods=["GET"])
@token_required
@role_required("client")
def get_my_bookings():
    """
    GET /api/bookings/mine?when=upcoming|past
    Purpose: The signed-in client's bookings.
    """
    try:
        query = select(Booking).where(Booking.client_id == g.current_user.id)
        status = request.args.get("status")
        if status:
            query = query.where(Booking.status == status)
        bookings = db.session.scalars(_filter_by_when(query, request.args.get("when"))).all()
        return jsonify({"status": "success", "bookings": [serialize_booking(b) for b in bookings]}), 200

    except Exception as e:
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@bookings_bp.route("/artist", methods=["GET"])
@token_required
@role_required("artist")
def get_artist_bookings():
    """
    GET /api/bookings/artist?status=pending&when=upcoming
    Purpose: Bookings with the signed-in artist, e.g. custom requests waiting for a decision.
    """
    try:
        query = select(Booking).where(Booking.artist_id == g.current_user.id)
        status = request.args.get("status")
        if status:
            query = query.where(Booking.status == status)
        bookings = db.session.scalars(_filter_by_when(query, request.args.get("when"))).all()
        return jsonify({"status": "success", "bookings": [serialize_booking(b) for b in bookings]}), 200

    except Exception as e:
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@bookings_bp.route("/<int:booking_id>/cancel", methods=["POST"])
@token_required
def cancel_booking(booking_id):
    """
    Cancel a booking
    ---
    tags:
      - Bookings
    security:
      - Bearer: []
    parameters:
      - {in: path, name: booking_id, type: integer, required: true}
      - in: body
        name: body
        schema:
          type: object
          properties:
            reason: {type: string}
    responses:
      200:
        description: Cancelled; deposit_outcome is refunded or forfeited
      403:
        description: Not a participant
      409:
        description: Booking already completed or cancelled
    """
    try:
        booking = db.session.get(Booking, booking_id)
        if not booking:
            return jsonify({"status": "error", "message": "Booking not found"}), 404

        data = request.get_json(silent=True) or {}
        outcome = booking_service.cancel_booking(
            booking, g.current_user, reason=(data.get("reason") or "").strip() or None
        )
        return jsonify({
            "status": "success",
            "message": "Booking cancelled",
            "deposit_outcome": outcome,
            "booking": serialize_booking(booking),
        }), 200

    except BookingError as e:
        db.session.rollback()
        return _booking_error(e)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Booking cancellation failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@bookings_bp.route("/<int:booking_id>/reschedule", methods=["POST"])
@token_required
def reschedule_booking(booking_id):
    """
    POST /api/bookings/<booking_id>/reschedule
    Purpose: Move a booking to another free window.
    Input: JSON { "booking_date": "YYYY-MM-DD", "start_time": "HH:MM", "end_time": "HH:MM" }

    Behavior:
    - A new booking is created (is_rescheduled, previous_booking_id) and takes over the payment
    - The old booking is cancelled with reason "rescheduled"
    """
    try:
        booking = db.session.get(Booking, booking_id)
        if not booking:
            return jsonify({"status": "error", "message": "Booking not found"}), 404

        data = request.get_json(force=True)
        replacement = booking_service.reschedule_booking(
            booking,
            g.current_user,
            data.get("booking_date"),
            data.get("start_time"),
            data.get("end_time"),
        )
        return jsonify({
            "status": "success",
            "message": "Booking rescheduled",
            "booking": serialize_booking(replacement),
            "previous_booking_id": booking.id,
        }), 200

    except BookingError as e:
        db.session.rollback()
        return _booking_error(e)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Booking reschedule failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@bookings_bp.route("/<int:booking_id>/status", methods=["PATCH"])
@token_required
def update_status(booking_id):
    """
    Move a booking through its lifecycle
    ---
    tags:
      - Bookings
    security:
      - Bearer: []
    parameters:
      - {in: path, name: booking_id, type: integer, required: true}
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            status: {type: string, enum: [confirmed, completed, cancelled]}
            reason: {type: string}
    responses:
      200:
        description: Updated
      403:
        description: Only the artist or studio owner may confirm or complete
      409:
        description: Transition not allowed
    """
    try:
        booking = db.session.get(Booking, booking_id)
        if not booking:
            return jsonify({"status": "error", "message": "Booking not found"}), 404

        data = request.get_json(force=True)
        new_status = (data.get("status") or "").strip().lower()
        booking_service.update_booking_status(
            booking, g.current_user, new_status, reason=data.get("reason")
        )
        return jsonify({"status": "success", "booking": serialize_booking(booking)}), 200

    except BookingError as e:
        db.session.rollback()
        return _booking_error(e)

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Booking status update failed: {e}")
        return jsonify({"status": "error", "message": "Internal server error", "details": str(e)}), 500


@bookings_bp.route("/<int:booking_id>/payment-summary", methods=["GET"])
@token_required
def get_payment_summary(booking_id):
    """
    GET /api/bookings/<booking_id>/payment-summary
    Purpose: Deposit paid, balance due at the studio and the free-cancellation deadline.
    """
    booking, error = _load_visible_booking(booking_id)
    if error:
        return error

    window_hours = current_app.config["CANCELLATION_WINDOW_HOURS"]
    deadline = booking_service.booking_start(booking) - datetime.timedelta(hours=window_hours)
    deposit = booking.deposit_amount or 0
    total = booking.total_price if booking.total_price is not None else deposit

    refundable_now = None
    if booking.status in ("pending", "confirmed"):
        refundable_now = (
            booking_service.deposit_outcome(booking, True, datetime.datetime.now(), window_hours)
            == "refunded"
        )

    return jsonify({
        "status": "success",
        "booking_id": booking.id,
        "booking_status": booking.status,
        "deposit_amount": money(deposit),
        "total_price": money(total),
        "balance_due": money(total - deposit),
        "cancellation_window_hours": window_hours,
        "free_cancellation_until": deadline.isoformat(),
        "refundable_if_cancelled_now": refundable_now,
        "payments": serialize_booking(booking)["payment"],
    }), 200
