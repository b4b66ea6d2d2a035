"""Tests for slot generation, window resolution, lead/horizon and conflict filtering."""

from datetime import date

import pytest

from agenda.errors import OutOfWindowError
from agenda.scheduling.conflicts import day_has_blocks, free_slots, overlaps, unblocked_slots
from agenda.scheduling.slots import RawSlot, generate_slots
from agenda.scheduling.window import booking_window, resolve_window
from agenda.schemas.availability_schema import UnavailableReason
from agenda.schemas.booking_schema import BookingStatus
from agenda.schemas.schedule_schema import DateRangeBlock, RecurringBlock, WeeklyOverride
from tests.conftest import OWNER, make_booking, make_config

MONDAY = date(2024, 1, 15)


def labels(slots):
    return [s.label for s in slots]


class TestGenerateSlots:
    def test_buffer_spaces_slots(self):
        slots = generate_slots(8 * 60, 18 * 60, 30, 10)
        assert labels(slots)[:3] == ["08:00", "08:40", "09:20"]
        assert slots[-1] == RawSlot(17 * 60 + 20, 17 * 60 + 50)
        assert len(slots) == 15

    def test_no_buffer_fills_window(self):
        slots = generate_slots(8 * 60, 18 * 60, 30, 0)
        assert len(slots) == 20
        assert slots[-1].end == 18 * 60

    def test_window_shorter_than_duration(self):
        assert generate_slots(600, 620, 30, 0) == []

    def test_exact_fit(self):
        assert generate_slots(600, 630, 30, 0) == [RawSlot(600, 630)]

    def test_rejects_bad_duration(self):
        with pytest.raises(ValueError):
            generate_slots(0, 100, 0, 0)

    def test_rejects_negative_buffer(self):
        with pytest.raises(ValueError):
            generate_slots(0, 100, 10, -1)


class TestResolveWindow:
    def test_falls_back_to_config(self):
        assert resolve_window(make_config(), [], 1) == (480, 1080)

    def test_active_override_wins(self):
        override = WeeklyOverride(owner_id=OWNER, weekday=6, active=True, start_time="09:00", end_time="12:00")
        assert resolve_window(make_config(), [override], 6) == (540, 720)

    def test_inactive_override_ignored(self):
        override = WeeklyOverride(owner_id=OWNER, weekday=6, active=False, start_time="09:00", end_time="12:00")
        assert resolve_window(make_config(), [override], 6) == (480, 1080)

    def test_override_for_other_weekday_ignored(self):
        override = WeeklyOverride(owner_id=OWNER, weekday=2, active=True, start_time="09:00", end_time="12:00")
        assert resolve_window(make_config(), [override], 1) == (480, 1080)

    def test_inverted_override_falls_back(self):
        override = WeeklyOverride(owner_id=OWNER, weekday=1, active=True, start_time="12:00", end_time="09:00")
        assert resolve_window(make_config(), [override], 1) == (480, 1080)

    def test_inverted_config_means_closed(self):
        config = make_config(opening_time="18:00", closing_time="08:00")
        assert resolve_window(config, [], 1) is None

    def test_no_config(self):
        assert resolve_window(None, [], 1) is None


class TestBookingWindow:
    def test_lead_adds_one_extra_day(self):
        window = booking_window(date(2024, 1, 10), lead_days=2, horizon_days=30)
        assert window.min_date == date(2024, 1, 13)
        assert window.max_date == date(2024, 2, 9)

    def test_zero_lead_starts_tomorrow(self):
        window = booking_window(date(2024, 1, 10), lead_days=0, horizon_days=1)
        assert window.min_date == date(2024, 1, 11)
        assert window.contains(date(2024, 1, 11))
        assert not window.contains(date(2024, 1, 10))

    def test_reasons(self):
        window = booking_window(date(2024, 1, 10), lead_days=2, horizon_days=30)
        assert window.reason_for(date(2024, 1, 12)) == UnavailableReason.OUT_OF_LEAD_TIME
        assert window.reason_for(date(2024, 2, 10)) == UnavailableReason.OUT_OF_HORIZON
        assert window.reason_for(date(2024, 2, 9)) is None

    def test_ensure_contains_raises_with_reason(self):
        window = booking_window(date(2024, 1, 10), lead_days=2, horizon_days=30)
        with pytest.raises(OutOfWindowError) as exc_info:
            window.ensure_contains(date(2024, 1, 11))
        assert exc_info.value.reason == "OUT_OF_LEAD_TIME"
        assert "2 days" in exc_info.value.message


class TestOverlap:
    def test_touching_intervals_do_not_overlap(self):
        assert not overlaps(600, 630, 630, 660)
        assert not overlaps(630, 660, 600, 630)

    def test_partial_overlap(self):
        assert overlaps(600, 630, 615, 700)


class TestFreeSlots:
    def setup_method(self):
        self.slots = generate_slots(8 * 60, 18 * 60, 30, 0)

    def test_recurring_block_removes_lunch(self):
        lunch = RecurringBlock(owner_id=OWNER, weekday=1, start_time="12:00", end_time="14:00")
        free = free_slots(self.slots, MONDAY, 1, [lunch], [], [])
        assert "11:30" in labels(free)
        assert "12:00" not in labels(free)
        assert "13:30" not in labels(free)
        assert "14:00" in labels(free)
        assert len(free) == 16

    def test_recurring_block_other_weekday(self):
        lunch = RecurringBlock(owner_id=OWNER, weekday=2, start_time="12:00", end_time="14:00")
        assert len(free_slots(self.slots, MONDAY, 1, [lunch], [], [])) == 20

    def test_malformed_recurring_block_ignored(self):
        bad = RecurringBlock(owner_id=OWNER, weekday=1, start_time="14:00", end_time="12:00")
        assert len(free_slots(self.slots, MONDAY, 1, [bad], [], [])) == 20

    def test_whole_day_block(self):
        holiday = DateRangeBlock(owner_id=OWNER, start_date=date(2024, 1, 14), end_date=date(2024, 1, 16))
        assert free_slots(self.slots, MONDAY, 1, [], [holiday], []) == []

    def test_timed_range_block(self):
        morning = DateRangeBlock(
            owner_id=OWNER,
            start_date=MONDAY,
            end_date=MONDAY,
            start_time="08:00",
            end_time="10:15",
        )
        free = free_slots(self.slots, MONDAY, 1, [], [morning], [])
        assert labels(free)[0] == "10:30"

    def test_timed_range_block_other_date(self):
        other = DateRangeBlock(
            owner_id=OWNER,
            start_date=date(2024, 1, 16),
            end_date=date(2024, 1, 16),
            start_time="08:00",
            end_time="18:00",
        )
        assert len(free_slots(self.slots, MONDAY, 1, [], [other], [])) == 20

    def test_active_booking_excluded(self):
        booked = make_booking(day=MONDAY, start_time="09:00")
        free = free_slots(self.slots, MONDAY, 1, [], [], [booked])
        assert "09:00" not in labels(free)
        assert len(free) == 19

    def test_cancelled_booking_frees_slot(self):
        cancelled = make_booking(day=MONDAY, start_time="09:00", status=BookingStatus.CANCELLED)
        assert len(free_slots(self.slots, MONDAY, 1, [], [], [cancelled])) == 20

    def test_output_ascending(self):
        free = free_slots(list(reversed(self.slots)), MONDAY, 1, [], [], [])
        assert labels(free) == sorted(labels(free))

    def test_unblocked_ignores_bookings(self):
        lunch = RecurringBlock(owner_id=OWNER, weekday=1, start_time="12:00", end_time="13:00")
        assert len(unblocked_slots(self.slots, MONDAY, 1, [lunch], [])) == 18


class TestDayHasBlocks:
    def test_recurring_on_weekday(self):
        block = RecurringBlock(owner_id=OWNER, weekday=1, start_time="12:00", end_time="13:00")
        assert day_has_blocks(MONDAY, 1, [block], [])
        assert not day_has_blocks(date(2024, 1, 16), 2, [block], [])

    def test_range_covering_day(self):
        block = DateRangeBlock(owner_id=OWNER, start_date=MONDAY, end_date=MONDAY)
        assert day_has_blocks(MONDAY, 1, [], [block])
