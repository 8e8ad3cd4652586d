"""
Booking creation, cancellation, rescheduling and status changes.

create_booking_with_payment is the one place a slot turns into a booking:
it locks the artist row, re-checks the slot against live availability,
charges the deposit and writes booking + payment in a single transaction.
"""

import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models import (
    ACTIVE_BOOKING_STATUSES,
    ArtistProfile,
    Booking,
    BookingPayment,
    ClientProfile,
    Design,
    Studio,
)
from app.services import availability
from app.services.booking_wizard import STEP_DETAILS, validate_wizard_step
from app.services.email_service import email_service
from app.services.payment_service import PaymentError, gateway
from app.utils.serializers import artist_display_name
from app.utils.validators import parse_date, parse_money, parse_time

ALLOWED_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


class BookingError(Exception):
    status_code = 400

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class BookingNotFound(BookingError):
    status_code = 404


class BookingForbidden(BookingError):
    status_code = 403


class BookingConflict(BookingError):
    status_code = 409


def booking_start(booking):
    return datetime.datetime.combine(booking.booking_date, booking.start_time)


def booking_end(booking):
    return datetime.datetime.combine(booking.booking_date, booking.end_time)


def design_prices(design, deposit_rate):
    """(total, deposit) from a design; deposit falls back to a share of the base price."""
    total = design.base_price
    deposit = design.deposit_amount
    if deposit is None and total is not None:
        deposit = (Decimal(total) * deposit_rate).quantize(Decimal("0.01"))
    return total, deposit


def _lock_artist(artist_id):
    # Serializes bookings per artist on MySQL; a no-op on SQLite.
    return db.session.execute(
        select(ArtistProfile).where(ArtistProfile.id == artist_id).with_for_update()
    ).scalar_one_or_none()


def _studio_owner_id(booking):
    return booking.studio.created_by if booking.studio else None


def is_booking_artist_side(booking, profile):
    return profile.id == booking.artist_id or profile.id == _studio_owner_id(booking)


def can_view_booking(booking, profile):
    return (
        profile.id == booking.client_id
        or is_booking_artist_side(booking, profile)
        or profile.is_admin
    )


def create_booking_with_payment(
    client_id,
    artist_id,
    booking_date,
    start_time,
    end_time,
    design_id=None,
    studio_id=None,
    total_price=None,
    deposit_amount=None,
    notes=None,
    payment_intent_id=None,
    now=None,
):
    now = now or datetime.datetime.now()
    state = {
        "booking_date": booking_date,
        "start_time": start_time,
        "end_time": end_time,
        "design_id": design_id,
        "notes": notes,
        "deposit_amount": deposit_amount,
        "total_price": total_price,
    }
    errors = validate_wizard_step(STEP_DETAILS, state, today=now.date())
    if errors:
        raise BookingError("Invalid booking details", errors)

    booking_date = parse_date(booking_date)
    start_time = parse_time(start_time)
    end_time = parse_time(end_time)
    total = parse_money(total_price)
    deposit = parse_money(deposit_amount)

    if not db.session.get(ClientProfile, client_id):
        raise BookingForbidden("A client profile is required to book")

    artist = _lock_artist(artist_id)
    if not artist:
        raise BookingNotFound("Artist not found")

    design = None
    if design_id:
        design = db.session.get(Design, design_id)
        if not design:
            raise BookingNotFound("Design not found")
        if design.artist_id != artist.id:
            raise BookingError("Design does not belong to this artist")
        if not design.is_available:
            raise BookingConflict("This design is no longer available")

        design_total, design_deposit = design_prices(
            design, current_app.config["DEFAULT_DEPOSIT_RATE"]
        )
        total = design_total if design_total is not None else total
        deposit = design_deposit if design_deposit is not None else deposit

    if total is None:
        total = deposit
    if deposit is None or deposit <= 0:
        raise BookingError("Invalid deposit amount")
    if total < deposit:
        raise BookingError("The estimated total cannot be less than the deposit")

    studio_id = studio_id or artist.primary_studio_id
    if studio_id and not db.session.get(Studio, studio_id):
        raise BookingNotFound("Studio not found")

    if payment_intent_id and db.session.scalar(
        select(BookingPayment.id).where(
            BookingPayment.payment_intent_id == payment_intent_id
        )
    ):
        raise BookingConflict("This payment has already been used for a booking")

    if not availability.is_window_bookable(
        artist.id, booking_date, start_time, end_time, now=now
    ):
        raise BookingConflict("The selected time slot is no longer available")

    try:
        intent_id = gateway.create_payment_intent(deposit, payment_intent_id)
    except PaymentError as e:
        raise BookingError(str(e))

    try:
        booking = Booking(
            client_id=client_id,
            artist_id=artist.id,
            studio_id=studio_id,
            design_id=design.id if design else None,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            status="confirmed" if design else "pending",
            total_price=total,
            deposit_amount=deposit,
            notes=notes,
        )
        db.session.add(booking)
        db.session.flush()

        db.session.add(
            BookingPayment(
                booking_id=booking.id,
                amount=deposit,
                payment_intent_id=intent_id,
                provider=gateway.provider,
                status="succeeded",
            )
        )

        if design and design.is_flash:
            design.is_available = False
            design.updated_at = now

        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        _release_charge(intent_id)
        raise BookingConflict("This payment has already been used for a booking")
    except Exception:
        db.session.rollback()
        _release_charge(intent_id)
        raise

    _notify_confirmation(booking)
    return booking


def _release_charge(intent_id):
    """Refund a deposit whose booking was never written, unless another booking holds the intent."""
    if db.session.scalar(
        select(BookingPayment.id).where(BookingPayment.payment_intent_id == intent_id)
    ):
        return False
    try:
        gateway.refund(intent_id)
    except PaymentError as e:
        current_app.logger.error(f"Refund of unbooked payment {intent_id} failed: {e}")
        return False
    current_app.logger.warning(f"Refunded payment {intent_id}: booking was not saved")
    return True


def deposit_outcome(booking, cancelled_by_client, now, window_hours):
    """'refunded' or 'forfeited' for a cancellation at now."""
    if not cancelled_by_client or booking.status == "pending":
        return "refunded"
    if booking_start(booking) - now >= datetime.timedelta(hours=window_hours):
        return "refunded"
    return "forfeited"


def _settle_payments(booking, outcome, now):
    for payment in booking.payments:
        if payment.status != "succeeded":
            continue
        if outcome == "refunded":
            gateway.refund(payment.payment_intent_id)
            payment.refunded_at = now
        payment.status = outcome


def cancel_booking(booking, actor, reason=None, now=None, commit=True):
    now = now or datetime.datetime.now()

    is_client = actor.id == booking.client_id
    if not (is_client or is_booking_artist_side(booking, actor) or actor.is_admin):
        raise BookingForbidden("You cannot cancel this booking")
    if booking.status not in ACTIVE_BOOKING_STATUSES:
        raise BookingConflict(f"A {booking.status} booking cannot be cancelled")

    outcome = deposit_outcome(
        booking, is_client, now, current_app.config["CANCELLATION_WINDOW_HOURS"]
    )
    _settle_payments(booking, outcome, now)

    booking.status = "cancelled"
    booking.cancellation_reason = reason
    booking.cancelled_by = actor.id
    booking.cancelled_at = now
    booking.updated_at = now

    if booking.design and booking.design.is_flash:
        booking.design.is_available = True

    if commit:
        db.session.commit()
        _notify_cancellation(booking, outcome)
    return outcome


def reschedule_booking(booking, actor, booking_date, start_time, end_time, now=None):
    now = now or datetime.datetime.now()

    if actor.id != booking.client_id:
        raise BookingForbidden("Only the client can reschedule this booking")
    if booking.status not in ACTIVE_BOOKING_STATUSES:
        raise BookingConflict(f"A {booking.status} booking cannot be rescheduled")

    try:
        new_date = parse_date(booking_date)
        new_start = parse_time(start_time)
        new_end = parse_time(end_time)
    except (TypeError, ValueError):
        raise BookingError("booking_date, start_time and end_time are required (ISO format)")
    if new_start >= new_end:
        raise BookingError("The time slot must end after it starts")

    _lock_artist(booking.artist_id)
    if not availability.is_window_bookable(
        booking.artist_id,
        new_date,
        new_start,
        new_end,
        now=now,
        exclude_booking_id=booking.id,
    ):
        raise BookingConflict("The selected time slot is no longer available")

    replacement = Booking(
        client_id=booking.client_id,
        artist_id=booking.artist_id,
        studio_id=booking.studio_id,
        design_id=booking.design_id,
        booking_date=new_date,
        start_time=new_start,
        end_time=new_end,
        status=booking.status,
        total_price=booking.total_price,
        deposit_amount=booking.deposit_amount,
        notes=booking.notes,
        is_rescheduled=True,
        previous_booking_id=booking.id,
    )
    db.session.add(replacement)
    db.session.flush()

    for payment in list(booking.payments):
        payment.booking_id = replacement.id

    booking.status = "cancelled"
    booking.cancellation_reason = "rescheduled"
    booking.cancelled_by = actor.id
    booking.cancelled_at = now
    booking.updated_at = now

    db.session.commit()
    return replacement


def update_booking_status(booking, actor, new_status, reason=None, now=None):
    now = now or datetime.datetime.now()

    if new_status not in ALLOWED_TRANSITIONS:
        raise BookingError(f"Unknown status '{new_status}'")
    if new_status not in ALLOWED_TRANSITIONS[booking.status]:
        raise BookingConflict(
            f"Cannot change a {booking.status} booking to {new_status}"
        )

    if new_status == "cancelled":
        cancel_booking(booking, actor, reason=reason, now=now)
        return booking

    if not (is_booking_artist_side(booking, actor) or actor.is_admin):
        raise BookingForbidden("Only the artist or studio can update this booking")
    if new_status == "completed" and booking_start(booking) > now:
        raise BookingConflict("A booking cannot be completed before it starts")

    booking.status = new_status
    booking.updated_at = now
    db.session.commit()
    return booking


# -------------------------------------------------------------------------
# Background maintenance
# -------------------------------------------------------------------------


def complete_finished_bookings(now=None):
    """Confirmed bookings whose end has passed become completed."""
    now = now or datetime.datetime.now()
    candidates = db.session.scalars(
        select(Booking).where(
            Booking.status == "confirmed", Booking.booking_date <= now.date()
        )
    ).all()

    finished = [b for b in candidates if booking_end(b) <= now]
    for booking in finished:
        booking.status = "completed"
        booking.updated_at = now
    db.session.commit()
    return len(finished)


def expire_stale_pending_bookings(now=None):
    """Pending bookings the artist never accepted are cancelled once their start passes."""
    now = now or datetime.datetime.now()
    candidates = db.session.scalars(
        select(Booking).where(
            Booking.status == "pending", Booking.booking_date <= now.date()
        )
    ).all()

    expired = [b for b in candidates if booking_start(b) <= now]
    for booking in expired:
        _settle_payments(booking, "refunded", now)
        booking.status = "cancelled"
        booking.cancellation_reason = "expired"
        booking.cancelled_at = now
        booking.updated_at = now
        if booking.design and booking.design.is_flash:
            booking.design.is_available = True
    db.session.commit()
    return len(expired)


# -------------------------------------------------------------------------
# Notifications
# -------------------------------------------------------------------------


def _notify_confirmation(booking):
    client = booking.client.profile
    result = email_service.send_booking_confirmation(
        to_email=client.email,
        client_name=client.full_name or client.email,
        artist_name=artist_display_name(booking.artist),
        studio_name=booking.studio.name if booking.studio else None,
        booking_date=booking.booking_date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        deposit_amount=booking.deposit_amount,
        total_price=booking.total_price,
        booking_id=booking.id,
        status=booking.status,
    )
    if not result.get("success"):
        current_app.logger.warning(
            f"Booking {booking.id} confirmation email failed: {result.get('error')}"
        )


def _notify_cancellation(booking, outcome):
    client = booking.client.profile
    result = email_service.send_cancellation_notification(
        to_email=client.email,
        recipient_name=client.full_name or client.email,
        artist_name=artist_display_name(booking.artist),
        booking_date=booking.booking_date,
        start_time=booking.start_time,
        reason=booking.cancellation_reason,
        deposit_outcome=outcome,
    )
    if not result.get("success"):
        current_app.logger.warning(
            f"Booking {booking.id} cancellation email failed: {result.get('error')}"
        )
