import datetime
from decimal import Decimal

import pytest

from app.models import Booking, BookingPayment, Design
from app.scheduler import run_booking_maintenance
from app.services.booking_service import (
    complete_finished_bookings,
    expire_stale_pending_bookings,
)

DAY = datetime.date(2025, 6, 10)


def add_booking(session, client, artist, status, start, end, design=None, paid=True):
    booking = Booking(
        client_id=client.id,
        artist_id=artist.id,
        design_id=design.id if design else None,
        booking_date=DAY,
        start_time=datetime.time(start),
        end_time=datetime.time(end),
        status=status,
        total_price=Decimal("100"),
        deposit_amount=Decimal("25"),
    )
    session.add(booking)
    session.flush()
    if paid:
        session.add(
            BookingPayment(
                booking_id=booking.id,
                amount=Decimal("25"),
                payment_intent_id=f"pi_sched_{booking.id}",
            )
        )
    session.commit()
    return booking


@pytest.mark.booking
class TestBookingMaintenance:
    def test_completes_only_finished_confirmed(self, db_session, sample_client, sample_artist):
        done = add_booking(db_session, sample_client, sample_artist, "confirmed", 9, 11)
        running = add_booking(db_session, sample_client, sample_artist, "confirmed", 11, 13)
        pending = add_booking(db_session, sample_client, sample_artist, "pending", 14, 15)

        count = complete_finished_bookings(datetime.datetime.combine(DAY, datetime.time(12)))

        assert count == 1
        assert db_session.get(Booking, done.id).status == "completed"
        assert db_session.get(Booking, running.id).status == "confirmed"
        assert db_session.get(Booking, pending.id).status == "pending"

    def test_expires_pending_after_start_with_refund(self, db_session, sample_client, sample_artist):
        stale = add_booking(db_session, sample_client, sample_artist, "pending", 9, 10)
        later = add_booking(db_session, sample_client, sample_artist, "pending", 15, 16)
        now = datetime.datetime.combine(DAY, datetime.time(12))

        assert expire_stale_pending_bookings(now) == 1

        stale = db_session.get(Booking, stale.id)
        assert stale.status == "cancelled"
        assert stale.cancellation_reason == "expired"
        assert stale.payments[0].status == "refunded"
        assert stale.payments[0].refunded_at == now
        assert db_session.get(Booking, later.id).status == "pending"

    def test_expiring_frees_flash_design(self, db_session, sample_client, sample_artist, flash_design):
        flash_design.is_available = False
        add_booking(db_session, sample_client, sample_artist, "pending", 9, 10, design=flash_design)

        expire_stale_pending_bookings(datetime.datetime.combine(DAY, datetime.time(11)))

        assert db_session.get(Design, flash_design.id).is_available is True

    def test_run_booking_maintenance(self, db_session, sample_client, sample_artist):
        add_booking(db_session, sample_client, sample_artist, "confirmed", 9, 10)
        add_booking(db_session, sample_client, sample_artist, "pending", 10, 11, paid=False)

        counts = run_booking_maintenance(datetime.datetime.combine(DAY + datetime.timedelta(days=1), datetime.time(0)))

        assert counts == {"completed": 1, "expired": 1}

    def test_nothing_to_do(self, app):
        assert run_booking_maintenance(datetime.datetime(2025, 1, 1)) == {"completed": 0, "expired": 0}
