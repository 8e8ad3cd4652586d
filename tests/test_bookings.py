import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from app.extensions import db as database
from app.models import ArtistProfile, Booking, BookingPayment, Design
from app.services import booking_service
from app.services.booking_service import BookingConflict, BookingForbidden
from app.services.booking_wizard import next_step, validate_wizard_step
from tests.conftest import auth_header, make_profile


def booking_payload(artist, day, start="10:00", end="12:00", **extra):
    payload = {
        "artist_id": artist.id,
        "booking_date": day.isoformat(),
        "start_time": start,
        "end_time": end,
    }
    payload.update(extra)
    return payload


def make_booking(session, client, artist, day, start=10, end=12, status="confirmed", design=None):
    booking = Booking(
        client_id=client.id,
        artist_id=artist.id,
        studio_id=artist.primary_studio_id,
        design_id=design.id if design else None,
        booking_date=day,
        start_time=datetime.time(start),
        end_time=datetime.time(end),
        status=status,
        total_price=Decimal("200.00"),
        deposit_amount=Decimal("50.00"),
    )
    session.add(booking)
    session.flush()
    session.add(
        BookingPayment(
            booking_id=booking.id,
            amount=Decimal("50.00"),
            payment_intent_id=f"pi_test_{booking.id}",
            status="succeeded",
        )
    )
    session.commit()
    return booking


@pytest.mark.booking
class TestWizardValidation:
    today = datetime.date(2025, 5, 15)

    def test_step_one_requires_date_and_slot(self):
        errors = validate_wizard_step(1, {}, today=self.today)
        assert set(errors) == {"booking_date", "time_slot"}
        assert next_step(1, errors) == 1

    def test_step_one_rejects_past_date(self):
        errors = validate_wizard_step(
            1,
            {"booking_date": "2025-05-14", "start_time": "10:00", "end_time": "11:00"},
            today=self.today,
        )
        assert errors == {"booking_date": "The selected date is in the past"}

    def test_step_one_passes(self):
        state = {"booking_date": "2025-05-15", "start_time": "10:00", "end_time": "11:00"}
        errors = validate_wizard_step(1, state, today=self.today)
        assert errors == {}
        assert next_step(1, errors) == 2

    def test_custom_work_needs_notes_and_deposit(self):
        state = {"booking_date": "2025-05-20", "start_time": "10:00", "end_time": "11:00"}
        errors = validate_wizard_step(2, state, today=self.today)
        assert set(errors) == {"notes", "deposit_amount"}

    def test_total_must_cover_deposit(self):
        state = {
            "booking_date": "2025-05-20",
            "start_time": "10:00",
            "end_time": "11:00",
            "notes": "Koi on forearm",
            "deposit_amount": "100",
            "total_price": "80",
        }
        assert set(validate_wizard_step(2, state, today=self.today)) == {"total_price"}

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "-inf", "1e40"])
    def test_non_finite_deposit_is_a_field_error(self, amount):
        state = {
            "booking_date": "2025-05-20",
            "start_time": "10:00",
            "end_time": "11:00",
            "notes": "Koi on forearm",
            "deposit_amount": amount,
        }
        assert validate_wizard_step(2, state, today=self.today) == {"deposit_amount": "Invalid deposit amount"}

    def test_design_booking_still_checks_amounts(self):
        state = {
            "booking_date": "2025-05-20",
            "start_time": "10:00",
            "end_time": "11:00",
            "design_id": 3,
            "total_price": "abc",
        }
        assert set(validate_wizard_step(2, state, today=self.today)) == {"total_price"}

    def test_design_booking_gets_prices_from_design(self):
        state = {"booking_date": "2025-05-20", "start_time": "10:00", "end_time": "11:00", "design_id": 3}
        assert validate_wizard_step(2, state, today=self.today) == {}

    def test_payment_step_requires_payment(self):
        state = {"booking_date": "2025-05-20", "start_time": "10:00", "end_time": "11:00", "design_id": 3}
        assert set(validate_wizard_step(3, state, today=self.today)) == {"payment"}
        state["payment_method"] = "pm_card_visa"
        errors = validate_wizard_step(3, state, today=self.today)
        assert errors == {}
        assert next_step(3, errors) == 3

    def test_unknown_step(self):
        assert "step" in validate_wizard_step(7, {}, today=self.today)

    def test_validate_endpoint(self, client):
        response = client.post("/api/bookings/wizard/validate", json={"step": 1})
        data = response.get_json()
        assert response.status_code == 200
        assert data["valid"] is False
        assert data["next_step"] == 1

    def test_validate_endpoint_reports_bad_deposit(self, client):
        response = client.post(
            "/api/bookings/wizard/validate",
            json={
                "step": 2,
                "booking_date": (datetime.date.today() + datetime.timedelta(days=3)).isoformat(),
                "start_time": "10:00",
                "end_time": "11:00",
                "notes": "Script",
                "deposit_amount": "NaN",
            },
        )
        data = response.get_json()
        assert response.status_code == 200
        assert data["valid"] is False
        assert "deposit_amount" in data["errors"]


@pytest.mark.booking
class TestCreateBooking:
    def test_flash_design_booking_is_confirmed(self, client, db_session, client_headers, sample_artist, flash_design, booking_day):
        response = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, design_id=flash_design.id, deposit_amount=1),
            headers=client_headers,
        )
        assert response.status_code == 201, response.get_json()

        booking = response.get_json()["booking"]
        assert booking["status"] == "confirmed"
        assert booking["deposit_amount"] == 50.0
        assert booking["total_price"] == 200.0
        assert booking["studio_id"] == sample_artist.primary_studio_id
        assert booking["payment"]["payment_intent_id"].startswith("pi_simulated_")
        assert booking["payment"]["provider"] == "simulated"

        assert db_session.get(Design, flash_design.id).is_available is False

    def test_custom_booking_is_pending(self, client, client_headers, sample_artist, booking_day):
        response = client.post(
            "/api/bookings",
            json=booking_payload(
                sample_artist,
                booking_day,
                notes="Fine line swallow, palm sized",
                deposit_amount="75.00",
                total_price="300",
            ),
            headers=client_headers,
        )
        assert response.status_code == 201
        booking = response.get_json()["booking"]
        assert booking["status"] == "pending"
        assert booking["design_id"] is None
        assert booking["deposit_amount"] == 75.0

    def test_custom_booking_without_notes(self, client, client_headers, sample_artist, booking_day):
        response = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, deposit_amount=50),
            headers=client_headers,
        )
        assert response.status_code == 400
        assert "notes" in response.get_json()["errors"]

    def test_default_deposit_is_twenty_percent(self, client, db_session, client_headers, sample_artist, booking_day):
        design = Design(artist_id=sample_artist.id, title="Rose", base_price=Decimal("150.00"))
        db_session.add(design)
        db_session.commit()

        response = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, design_id=design.id),
            headers=client_headers,
        )
        assert response.status_code == 201
        assert response.get_json()["booking"]["deposit_amount"] == 30.0

    def test_overlapping_slot_is_rejected(self, client, client_headers, sample_artist, booking_day, other_client):
        first = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, notes="Sleeve consult", deposit_amount=40),
            headers=client_headers,
        )
        assert first.status_code == 201

        second = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, "11:00", "13:00", notes="Back piece", deposit_amount=40),
            headers=auth_header(other_client),
        )
        assert second.status_code == 409

        adjacent = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, "12:00", "13:00", notes="Back piece", deposit_amount=40),
            headers=auth_header(other_client),
        )
        assert adjacent.status_code == 201

    def test_outside_working_hours(self, client, client_headers, sample_artist, booking_day):
        response = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, "17:00", "19:00", notes="Late", deposit_amount=40),
            headers=client_headers,
        )
        assert response.status_code == 409

    def test_duplicate_payment_intent(self, client, client_headers, sample_artist, booking_day):
        payload = booking_payload(
            sample_artist, booking_day, notes="Script", deposit_amount=40, payment_intent_id="pi_simulated_abc"
        )
        assert client.post("/api/bookings", json=payload, headers=client_headers).status_code == 201

        payload.update(start_time="14:00", end_time="15:00")
        response = client.post("/api/bookings", json=payload, headers=client_headers)
        assert response.status_code == 409

    def test_design_booking_with_malformed_total(self, client, client_headers, sample_artist, flash_design, booking_day):
        response = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, design_id=flash_design.id, total_price="abc"),
            headers=client_headers,
        )
        assert response.status_code == 400
        assert "total_price" in response.get_json()["errors"]

    def test_failed_write_refunds_the_charge(self, app, db_session, monkeypatch, sample_client, sample_artist, booking_day):
        refunds = []
        monkeypatch.setattr(booking_service.gateway, "refund", lambda intent_id: refunds.append(intent_id) or True)

        def failing_commit():
            raise IntegrityError("INSERT INTO booking_payments", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(database.session(), "commit", failing_commit)

        with pytest.raises(BookingConflict):
            booking_service.create_booking_with_payment(
                client_id=sample_client.id,
                artist_id=sample_artist.id,
                booking_date=booking_day.isoformat(),
                start_time="10:00",
                end_time="11:00",
                notes="Script",
                deposit_amount="40",
            )

        assert len(refunds) == 1
        assert refunds[0].startswith("pi_simulated_")
        assert db_session.query(Booking).count() == 0

    def test_intent_held_by_another_booking_is_not_refunded(self, app, db_session, monkeypatch, sample_client, sample_artist, booking_day):
        refunds = []
        monkeypatch.setattr(booking_service.gateway, "refund", lambda intent_id: refunds.append(intent_id) or True)
        existing = make_booking(db_session, sample_client, sample_artist, booking_day)

        assert booking_service._release_charge(f"pi_test_{existing.id}") is False
        assert booking_service._release_charge("pi_simulated_orphan") is True
        assert refunds == ["pi_simulated_orphan"]

    def test_design_of_other_artist(self, client, db_session, client_headers, sample_artist, booking_day):
        stranger = make_profile(db_session, "stranger@example.com", "artist")
        db_session.add(ArtistProfile(id=stranger.id, artist_name="Stranger"))
        design = Design(artist_id=stranger.id, title="Not yours", base_price=Decimal("90"))
        db_session.add(design)
        db_session.commit()

        response = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, design_id=design.id),
            headers=client_headers,
        )
        assert response.status_code == 400

    def test_booked_flash_design_is_unavailable(self, client, client_headers, sample_artist, flash_design, booking_day):
        payload = booking_payload(sample_artist, booking_day, design_id=flash_design.id)
        assert client.post("/api/bookings", json=payload, headers=client_headers).status_code == 201

        payload.update(start_time="14:00", end_time="16:00")
        assert client.post("/api/bookings", json=payload, headers=client_headers).status_code == 409

    def test_artist_cannot_book(self, client, artist_headers, sample_artist, booking_day):
        response = client.post(
            "/api/bookings",
            json=booking_payload(sample_artist, booking_day, notes="x", deposit_amount=10),
            headers=artist_headers,
        )
        assert response.status_code == 403

    def test_unauthenticated_booking_redirects_to_signin(self, client, sample_artist, booking_day):
        response = client.post("/api/bookings", json=booking_payload(sample_artist, booking_day))
        assert response.status_code == 401
        assert response.get_json()["redirect_to"].startswith("/auth/signin?redirect=")

    def test_quote_for_design(self, client, sample_artist, flash_design):
        data = client.get(
            f"/api/bookings/quote?artist_id={sample_artist.id}&design_id={flash_design.id}"
        ).get_json()
        assert data["total_price"] == 200.0
        assert data["deposit_amount"] == 50.0
        assert data["is_custom"] is False


@pytest.mark.booking
class TestCancellation:
    def test_deposit_outcome_rules(self, booking_day):
        start = datetime.datetime.combine(booking_day, datetime.time(10))
        booking = Booking(booking_date=booking_day, start_time=datetime.time(10), status="confirmed")

        early = start - datetime.timedelta(hours=48)
        late = start - datetime.timedelta(hours=47)
        assert booking_service.deposit_outcome(booking, True, early, 48) == "refunded"
        assert booking_service.deposit_outcome(booking, True, late, 48) == "forfeited"
        assert booking_service.deposit_outcome(booking, False, late, 48) == "refunded"

        booking.status = "pending"
        assert booking_service.deposit_outcome(booking, True, late, 48) == "refunded"

    def test_client_cancels_early_gets_refund(self, client, db_session, client_headers, sample_client, sample_artist, flash_design, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day, design=flash_design)
        flash_design.is_available = False
        db_session.commit()

        response = client.post(
            f"/api/bookings/{booking.id}/cancel", json={"reason": "Moving away"}, headers=client_headers
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data["deposit_outcome"] == "refunded"
        assert data["booking"]["status"] == "cancelled"
        assert data["booking"]["cancellation_reason"] == "Moving away"
        assert data["booking"]["cancelled_by"] == sample_client.id
        assert data["booking"]["payment"]["status"] == "refunded"
        assert db_session.get(Design, flash_design.id).is_available is True

    def test_client_cancels_late_forfeits(self, db_session, sample_client, sample_artist):
        day = datetime.date.today() + datetime.timedelta(days=1)
        booking = make_booking(db_session, sample_client, sample_artist, day)
        now = datetime.datetime.combine(day, datetime.time(8))

        outcome = booking_service.cancel_booking(booking, sample_client, now=now)

        assert outcome == "forfeited"
        assert booking.payments[0].status == "forfeited"
        assert booking.payments[0].refunded_at is None

    def test_artist_cancel_always_refunds(self, client, db_session, artist_headers, sample_client, sample_artist):
        day = datetime.date.today() + datetime.timedelta(days=1)
        booking = make_booking(db_session, sample_client, sample_artist, day)

        response = client.post(f"/api/bookings/{booking.id}/cancel", json={}, headers=artist_headers)
        assert response.get_json()["deposit_outcome"] == "refunded"

    def test_stranger_cannot_cancel(self, client, db_session, sample_client, other_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day)
        response = client.post(f"/api/bookings/{booking.id}/cancel", headers=auth_header(other_client))
        assert response.status_code == 403

    def test_cannot_cancel_twice(self, db_session, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day)
        booking_service.cancel_booking(booking, sample_client)
        with pytest.raises(BookingConflict):
            booking_service.cancel_booking(booking, sample_client)


@pytest.mark.booking
class TestRescheduleAndStatus:
    def test_reschedule_moves_payment(self, client, db_session, client_headers, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day)
        new_day = booking_day + datetime.timedelta(days=1)

        response = client.post(
            f"/api/bookings/{booking.id}/reschedule",
            json={"booking_date": new_day.isoformat(), "start_time": "14:00", "end_time": "16:00"},
            headers=client_headers,
        )
        assert response.status_code == 200
        new = response.get_json()["booking"]
        assert new["is_rescheduled"] is True
        assert new["previous_booking_id"] == booking.id
        assert new["status"] == "confirmed"
        assert new["payment"]["payment_intent_id"] == f"pi_test_{booking.id}"

        old = db_session.get(Booking, booking.id)
        assert old.status == "cancelled"
        assert old.cancellation_reason == "rescheduled"
        assert old.payments == []

    def test_reschedule_into_own_slot_overlap_is_allowed(self, db_session, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day, 10, 12)
        new = booking_service.reschedule_booking(booking, sample_client, booking_day, "11:00", "13:00")
        assert new.start_time == datetime.time(11)

    def test_reschedule_into_taken_slot(self, db_session, sample_client, other_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day, 10, 12)
        make_booking(db_session, other_client, sample_artist, booking_day, 14, 16)
        with pytest.raises(BookingConflict):
            booking_service.reschedule_booking(booking, sample_client, booking_day, "15:00", "16:00")

    def test_only_client_reschedules(self, db_session, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day)
        with pytest.raises(BookingForbidden):
            booking_service.reschedule_booking(booking, sample_artist.profile, booking_day, "14:00", "15:00")

    def test_artist_confirms_pending(self, client, db_session, artist_headers, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day, status="pending")
        response = client.patch(
            f"/api/bookings/{booking.id}/status", json={"status": "confirmed"}, headers=artist_headers
        )
        assert response.status_code == 200
        assert response.get_json()["booking"]["status"] == "confirmed"

    def test_studio_owner_confirms_pending(self, client, db_session, owner_headers, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day, status="pending")
        response = client.patch(
            f"/api/bookings/{booking.id}/status", json={"status": "confirmed"}, headers=owner_headers
        )
        assert response.status_code == 200

    def test_client_cannot_confirm(self, client, db_session, client_headers, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day, status="pending")
        response = client.patch(
            f"/api/bookings/{booking.id}/status", json={"status": "confirmed"}, headers=client_headers
        )
        assert response.status_code == 403

    def test_invalid_transition(self, client, db_session, artist_headers, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day, status="pending")
        response = client.patch(
            f"/api/bookings/{booking.id}/status", json={"status": "completed"}, headers=artist_headers
        )
        assert response.status_code == 409

    def test_cannot_complete_future_booking(self, client, db_session, artist_headers, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day)
        response = client.patch(
            f"/api/bookings/{booking.id}/status", json={"status": "completed"}, headers=artist_headers
        )
        assert response.status_code == 409

    def test_booking_visibility(self, client, db_session, client_headers, sample_client, other_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day)
        assert client.get(f"/api/bookings/{booking.id}", headers=client_headers).status_code == 200
        assert client.get(f"/api/bookings/{booking.id}", headers=auth_header(other_client)).status_code == 403

    def test_payment_summary(self, client, db_session, client_headers, sample_client, sample_artist, booking_day):
        booking = make_booking(db_session, sample_client, sample_artist, booking_day)
        data = client.get(f"/api/bookings/{booking.id}/payment-summary", headers=client_headers).get_json()

        assert data["deposit_amount"] == 50.0
        assert data["balance_due"] == 150.0
        assert data["refundable_if_cancelled_now"] is True

    def test_my_bookings(self, client, db_session, client_headers, sample_client, sample_artist, booking_day):
        make_booking(db_session, sample_client, sample_artist, booking_day)
        make_booking(db_session, sample_client, sample_artist, booking_day + datetime.timedelta(days=2))

        bookings = client.get("/api/bookings/mine", headers=client_headers).get_json()["bookings"]
        assert [b["booking_date"] for b in bookings] == [
            (booking_day + datetime.timedelta(days=2)).isoformat(),
            booking_day.isoformat(),
        ]
