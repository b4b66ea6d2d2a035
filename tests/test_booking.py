"""Tests for the booking transaction, idempotent public path and status changes."""

import logging
import threading
from datetime import date
from unittest.mock import patch

import pytest

from agenda.engine import BookingEngine
from agenda.errors import (
    ConcurrentBookingConflict,
    NotConfiguredError,
    NotFoundError,
    OutOfWindowError,
    SlotUnavailableError,
    ValidationError,
)
from agenda.schemas.availability_schema import TimeSlot
from agenda.schemas.booking_schema import BookingStatus
from agenda.schemas.schedule_schema import RecurringBlock
from tests.conftest import OWNER, make_config, make_request


class TestRequestValidation:
    def test_short_name(self, configured_engine):
        with pytest.raises(ValidationError, match="Name"):
            configured_engine.create_booking(OWNER, make_request(name=" A "))

    def test_name_checked_before_phone(self, configured_engine):
        with pytest.raises(ValidationError, match="Name"):
            configured_engine.create_booking(OWNER, make_request(name="A", phone="12"))

    def test_short_phone(self, configured_engine):
        with pytest.raises(ValidationError, match="Phone"):
            configured_engine.create_booking(OWNER, make_request(phone="(11) 9876"))

    def test_long_note(self, configured_engine):
        with pytest.raises(ValidationError, match="Note"):
            configured_engine.create_booking(OWNER, make_request(note="x" * 501))

    def test_bad_date(self, configured_engine):
        with pytest.raises(ValidationError, match="date"):
            configured_engine.create_booking(OWNER, make_request(day="2024-02-30"))

    def test_date_checked_before_time(self, configured_engine):
        with pytest.raises(ValidationError, match="date"):
            configured_engine.create_booking(OWNER, make_request(day="15/01/2024", start_time="99:99"))

    def test_bad_time(self, configured_engine):
        with pytest.raises(ValidationError, match="time"):
            configured_engine.create_booking(OWNER, make_request(start_time="25:00"))

    def test_not_configured(self, engine):
        with pytest.raises(NotConfiguredError):
            engine.create_booking(OWNER, make_request())

    def test_format_errors_win_over_missing_config(self, engine):
        with pytest.raises(ValidationError):
            engine.create_booking(OWNER, make_request(start_time="nope"))


class TestBookingWindowRules:
    def test_inside_lead_time(self, engine):
        engine.admin.upsert_config(make_config(lead_days=2))
        with pytest.raises(OutOfWindowError) as exc_info:
            engine.create_booking(OWNER, make_request(day="2024-01-12"))
        assert exc_info.value.reason == "OUT_OF_LEAD_TIME"
        assert exc_info.value.to_dict()["leadDays"] == 2

    def test_first_bookable_date_after_lead(self, engine):
        engine.admin.upsert_config(make_config(lead_days=2))
        booking = engine.create_booking(OWNER, make_request(day="2024-01-13"))
        assert booking.date == date(2024, 1, 13)

    def test_beyond_horizon(self, configured_engine):
        with pytest.raises(OutOfWindowError) as exc_info:
            configured_engine.create_booking(OWNER, make_request(day="2024-03-01"))
        assert exc_info.value.reason == "OUT_OF_HORIZON"


class TestCreateBooking:
    def test_creates_pending_booking(self, configured_engine, store):
        booking = configured_engine.create_booking(OWNER, make_request(start_time="9:00", note="  "))
        assert booking.status == BookingStatus.PENDING
        assert booking.start_time == "09:00"
        assert booking.end_time == "09:30"
        assert booking.customer_phone == "11987654321"
        assert booking.note is None
        assert store.get_booking(OWNER, booking.id) == booking

    def test_end_time_uses_slot_duration(self, engine):
        engine.admin.upsert_config(make_config(slot_duration_minutes=45, buffer_minutes=15))
        booking = engine.create_booking(OWNER, make_request(start_time="09:00"))
        assert booking.end_time == "09:45"

    def test_note_is_sanitised(self, configured_engine):
        booking = configured_engine.create_booking(OWNER, make_request(note=" <b>Bring</b> documents "))
        assert booking.note == "Bring documents"

    def test_long_name_truncated(self, configured_engine):
        booking = configured_engine.create_booking(OWNER, make_request(name="N" * 250))
        assert len(booking.customer_name) == 200

    def test_unaligned_start_rejected(self, configured_engine):
        with pytest.raises(SlotUnavailableError):
            configured_engine.create_booking(OWNER, make_request(start_time="09:15"))

    def test_blocked_start_rejected(self, configured_engine):
        configured_engine.admin.add_block(
            RecurringBlock(owner_id=OWNER, weekday=1, start_time="12:00", end_time="14:00")
        )
        with pytest.raises(SlotUnavailableError) as exc_info:
            configured_engine.create_booking(OWNER, make_request(start_time="12:30"))
        assert exc_info.value.status_code == 409

    def test_second_request_for_same_slot(self, configured_engine, store):
        configured_engine.create_booking(OWNER, make_request())
        with pytest.raises(SlotUnavailableError):
            configured_engine.create_booking(OWNER, make_request(name="Other Person"))
        assert store.count_bookings(OWNER) == 1

    def test_lost_race_raises_conflict_and_logs(self, configured_engine, store, caplog):
        configured_engine.create_booking(OWNER, make_request())
        stale = [TimeSlot(start="09:00", end="09:30")]
        with patch.object(configured_engine.availability, "get_available_slots", return_value=stale):
            with caplog.at_level(logging.WARNING, logger="agenda.services.booking"):
                with pytest.raises(ConcurrentBookingConflict):
                    configured_engine.create_booking(OWNER, make_request(name="Other Person"))
        assert "race lost" in caplog.text
        assert store.count_bookings(OWNER) == 1

    def test_concurrent_requests_yield_one_booking(self, configured_engine, store):
        # Both threads pass the free-slot check before either inserts.
        barrier = threading.Barrier(2, timeout=5)
        real_slots = configured_engine.availability.get_available_slots
        outcomes = []

        def slots_then_wait(owner_id, day):
            result = real_slots(owner_id, day)
            barrier.wait()
            return result

        def attempt(name):
            try:
                configured_engine.create_booking(OWNER, make_request(name=name))
                outcomes.append("ok")
            except ConcurrentBookingConflict:
                outcomes.append("conflict")

        with patch.object(configured_engine.availability, "get_available_slots", side_effect=slots_then_wait):
            threads = [threading.Thread(target=attempt, args=(n,)) for n in ("First Person", "Second Person")]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert sorted(outcomes) == ["conflict", "ok"]
        assert store.count_bookings(OWNER) == 1

    def test_lost_race_on_sql_store(self, clock):
        engine = BookingEngine.from_database("sqlite://", clock=clock)
        engine.admin.upsert_config(make_config())
        engine.create_booking(OWNER, make_request())
        stale = [TimeSlot(start="09:00", end="09:30")]
        with patch.object(engine.availability, "get_available_slots", return_value=stale):
            with pytest.raises(ConcurrentBookingConflict):
                engine.create_booking(OWNER, make_request(name="Other Person"))

    def test_other_owner_unaffected(self, configured_engine):
        configured_engine.admin.upsert_config(make_config(owner_id="owner-2"))
        configured_engine.create_booking(OWNER, make_request())
        booking = configured_engine.create_booking("owner-2", make_request())
        assert booking.owner_id == "owner-2"


class TestPublicBooking:
    def test_receipt_body(self, configured_engine):
        record = configured_engine.create_public_booking(OWNER, make_request())
        assert record.status_code == 201
        body = record.body
        assert body["ok"] is True
        assert body["status"] == "PENDING"
        assert body["booking"]["date"] == "2024-01-15"
        assert body["booking"]["start"] == "09:00"
        assert body["booking"]["end"] == "09:30"
        assert body["whatsapp_url"].startswith("https://wa.me/5511987654321?text=")

    def test_same_key_replays_first_response(self, configured_engine, store):
        first = configured_engine.create_public_booking(OWNER, make_request(), "key-1")
        second = configured_engine.create_public_booking(OWNER, make_request(), "key-1")
        assert second.body == first.body
        assert second.status_code == 201
        assert store.count_bookings(OWNER) == 1

    def test_key_expires_after_ttl(self, configured_engine, clock):
        configured_engine.create_public_booking(OWNER, make_request(), "key-1")
        clock.advance(seconds=61)
        with pytest.raises(SlotUnavailableError):
            configured_engine.create_public_booking(OWNER, make_request(), "key-1")

    def test_different_key_is_a_new_attempt(self, configured_engine):
        configured_engine.create_public_booking(OWNER, make_request(), "key-1")
        with pytest.raises(SlotUnavailableError):
            configured_engine.create_public_booking(OWNER, make_request(), "key-2")

    def test_keys_scoped_per_owner(self, configured_engine, store):
        configured_engine.admin.upsert_config(make_config(owner_id="owner-2"))
        configured_engine.create_public_booking(OWNER, make_request(), "shared")
        configured_engine.create_public_booking("owner-2", make_request(), "shared")
        assert store.count_bookings("owner-2") == 1

    def test_colon_in_owner_and_key_are_not_confused(self, configured_engine, store):
        configured_engine.admin.upsert_config(make_config(owner_id="a:b"))
        configured_engine.admin.upsert_config(make_config(owner_id="a"))
        first = configured_engine.create_public_booking("a:b", make_request(), "x")
        second = configured_engine.create_public_booking("a", make_request(name="Other Person"), "b:x")
        assert second.body["booking_id"] != first.body["booking_id"]
        assert store.count_bookings("a") == 1
        assert store.count_bookings("a:b") == 1

    def test_failure_is_not_remembered(self, configured_engine, store):
        with pytest.raises(ValidationError):
            configured_engine.create_public_booking(OWNER, make_request(phone="123"), "key-1")
        record = configured_engine.create_public_booking(OWNER, make_request(), "key-1")
        assert record.status_code == 201
        assert store.count_bookings(OWNER) == 1

    def test_manual_booking_has_no_idempotency(self, configured_engine):
        booking = configured_engine.bookings.create_manual_booking(OWNER, make_request())
        assert booking.status == BookingStatus.PENDING
        with pytest.raises(SlotUnavailableError):
            configured_engine.bookings.create_manual_booking(OWNER, make_request())


class TestStatusTransitions:
    def test_cancel_frees_slot(self, configured_engine):
        booking = configured_engine.create_booking(OWNER, make_request())
        configured_engine.bookings.set_status(OWNER, booking.id, BookingStatus.CANCELLED)
        starts = [s.start for s in configured_engine.get_available_slots(OWNER, date(2024, 1, 15))]
        assert "09:00" in starts

    def test_reactivating_into_taken_slot(self, configured_engine):
        first = configured_engine.create_booking(OWNER, make_request())
        configured_engine.bookings.set_status(OWNER, first.id, BookingStatus.CANCELLED)
        configured_engine.create_booking(OWNER, make_request(name="Other Person"))
        with pytest.raises(ConcurrentBookingConflict):
            configured_engine.bookings.set_status(OWNER, first.id, BookingStatus.CONFIRMED)

    def test_confirm(self, configured_engine):
        booking = configured_engine.create_booking(OWNER, make_request())
        confirmed = configured_engine.bookings.set_status(OWNER, booking.id, BookingStatus.CONFIRMED)
        assert confirmed.status == BookingStatus.CONFIRMED

    def test_check_in_and_no_show(self, configured_engine, clock):
        booking = configured_engine.create_booking(OWNER, make_request())
        checked = configured_engine.bookings.check_in(OWNER, booking.id)
        assert checked.checked_in_at == clock.now()
        assert checked.no_show is False
        missed = configured_engine.bookings.mark_no_show(OWNER, booking.id)
        assert missed.no_show is True
        assert missed.checked_in_at is None

    def test_unknown_booking(self, configured_engine):
        with pytest.raises(NotFoundError):
            configured_engine.bookings.set_status(OWNER, "missing", BookingStatus.CONFIRMED)

    def test_other_owner_cannot_touch_booking(self, configured_engine):
        booking = configured_engine.create_booking(OWNER, make_request())
        with pytest.raises(NotFoundError):
            configured_engine.bookings.check_in("owner-2", booking.id)
