import unittest
from datetime import date, datetime

from room_reservations import (
    AvailabilityStatus,
    BookingPolicy,
    ReservationRecord,
    ReservationStatus,
    Resource,
    TimeSlot,
    compute_availability,
    compute_availability_range,
)

MONDAY = date(2026, 3, 2)
NOW = datetime(2026, 2, 24, 9, 0)


def _record(account_id: str, start_hour: int, end_hour: int, day: date = MONDAY, **kwargs) -> ReservationRecord:
    return ReservationRecord(
        reservation_id=f"{account_id}-{start_hour}",
        resource_id=kwargs.pop("resource_id", "R1"),
        account_id=account_id,
        day=day,
        slot=TimeSlot.from_hours(start_hour, end_hour),
        created_at=NOW,
        **kwargs,
    )


class TestComputeAvailability(unittest.TestCase):
    def setUp(self) -> None:
        self.room = Resource("R1", "Room 1", 25000)

    def test_empty_ledger_is_all_available(self) -> None:
        grid = compute_availability(self.room, MONDAY, [], "A1", NOW)

        self.assertEqual(len(grid), 9)
        self.assertTrue(all(status is AvailabilityStatus.AVAILABLE for status in grid.values()))

    def test_own_booking_versus_other_viewer(self) -> None:
        reservations = [_record("A1", 9, 10)]
        slot = TimeSlot.from_hours(9, 10)

        own = compute_availability(self.room, MONDAY, reservations, "A1", NOW)
        other = compute_availability(self.room, MONDAY, reservations, "A2", NOW)

        self.assertIs(own[slot], AvailabilityStatus.USER_BOOKING)
        self.assertIs(other[slot], AvailabilityStatus.BOOKED)
        self.assertIs(other[TimeSlot.from_hours(10, 11)], AvailabilityStatus.AVAILABLE)

    def test_multi_hour_reservation_marks_each_hour(self) -> None:
        grid = compute_availability(self.room, MONDAY, [_record("A2", 13, 16)], "A1", NOW)

        booked = [slot.start.hour for slot, status in grid.items() if status is AvailabilityStatus.BOOKED]
        self.assertEqual(booked, [13, 14, 15])

    def test_cancelled_reservation_is_ignored(self) -> None:
        reservations = [_record("A2", 9, 10, status=ReservationStatus.CANCELLED)]

        grid = compute_availability(self.room, MONDAY, reservations, "A1", NOW)

        self.assertIs(grid[TimeSlot.from_hours(9, 10)], AvailabilityStatus.AVAILABLE)

    def test_other_resources_and_days_are_ignored(self) -> None:
        reservations = [
            _record("A2", 9, 10, resource_id="R2"),
            _record("A2", 10, 11, day=date(2026, 3, 3)),
        ]

        grid = compute_availability(self.room, MONDAY, reservations, "A1", NOW)

        self.assertTrue(all(status is AvailabilityStatus.AVAILABLE for status in grid.values()))

    def test_weekend_is_closed(self) -> None:
        grid = compute_availability(self.room, date(2026, 2, 28), [], "A1", NOW)

        self.assertTrue(all(status is AvailabilityStatus.CLOSED for status in grid.values()))

    def test_same_day_cutoff_closes_current_hour(self) -> None:
        now = datetime(2026, 3, 2, 11, 40)

        grid = compute_availability(self.room, MONDAY, [_record("A1", 12, 13)], "A1", now)

        self.assertIs(grid[TimeSlot.from_hours(11, 12)], AvailabilityStatus.CLOSED)
        self.assertIs(grid[TimeSlot.from_hours(12, 13)], AvailabilityStatus.USER_BOOKING)
        self.assertIs(grid[TimeSlot.from_hours(13, 14)], AvailabilityStatus.AVAILABLE)

    def test_past_booking_shows_closed(self) -> None:
        now = datetime(2026, 3, 3, 8, 0)

        grid = compute_availability(self.room, MONDAY, [_record("A1", 9, 10)], "A1", now)

        self.assertTrue(all(status is AvailabilityStatus.CLOSED for status in grid.values()))

    def test_resource_hours_define_grid(self) -> None:
        early_room = Resource("R9", "Early room", 1000, open_hour=7, close_hour=10)

        grid = compute_availability(early_room, MONDAY, [], None, NOW)

        self.assertEqual([slot.start.hour for slot in grid], [7, 8, 9])

    def test_holiday_policy_closes_day(self) -> None:
        policy = BookingPolicy(holiday_country="US")
        grid = compute_availability(self.room, date(2026, 1, 1), [], "A1", datetime(2025, 12, 20, 9, 0), policy)

        self.assertTrue(all(status is AvailabilityStatus.CLOSED for status in grid.values()))

    def test_identical_inputs_give_identical_output(self) -> None:
        reservations = [_record("A1", 9, 10), _record("A2", 14, 15)]

        first = compute_availability(self.room, MONDAY, reservations, "A1", NOW)
        second = compute_availability(self.room, MONDAY, reservations, "A1", NOW)

        self.assertEqual(first, second)
        self.assertEqual(list(first), list(second))


class TestComputeAvailabilityRange(unittest.TestCase):
    def test_range_covers_each_day_inclusive(self) -> None:
        room = Resource("R1", "Room 1", 25000)

        days = compute_availability_range(room, date(2026, 2, 27), MONDAY, [_record("A2", 9, 10)], "A1", NOW)

        self.assertEqual(list(days), [date(2026, 2, 27), date(2026, 2, 28), date(2026, 3, 1), MONDAY])
        self.assertIs(days[date(2026, 2, 27)][TimeSlot.from_hours(9, 10)], AvailabilityStatus.AVAILABLE)
        self.assertIs(days[date(2026, 2, 28)][TimeSlot.from_hours(9, 10)], AvailabilityStatus.CLOSED)
        self.assertIs(days[MONDAY][TimeSlot.from_hours(9, 10)], AvailabilityStatus.BOOKED)

    def test_reversed_range_raises(self) -> None:
        with self.assertRaises(ValueError):
            compute_availability_range(Resource("R1", "Room 1", 0), MONDAY, date(2026, 3, 1), [], None, NOW)


if __name__ == "__main__":
    unittest.main()
