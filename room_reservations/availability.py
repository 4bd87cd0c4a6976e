"""
Derived per-slot availability for a resource.

Availability is presentational: it is recomputed on every query and never
stored. The allocator always re-checks the ledger before writing.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable

from .booking import TimeSlot, hourly_grid, is_operating_day, is_past, slots_overlap
from .catalog import Resource
from .config import BookingPolicy
from .yaml_store import ReservationRecord


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    USER_BOOKING = "user-booking"
    CLOSED = "closed"


def compute_availability(
    resource: Resource,
    day: date,
    reservations: Iterable[ReservationRecord],
    requesting_account_id: str | None,
    now: datetime,
    policy: BookingPolicy | None = None,
) -> dict[TimeSlot, AvailabilityStatus]:
    """Classify every hourly slot of ``resource`` on ``day``.

    Order of precedence per slot: closed (past or non-operating day), then
    the requester's own confirmed booking, then anyone else's, then free.
    Cancelled reservations and rows for other resources or days are ignored.
    """
    effective_policy = policy or BookingPolicy()
    relevant = [
        record
        for record in reservations
        if record.is_confirmed and record.resource_id == resource.resource_id and record.day == day
    ]
    operating = is_operating_day(day, effective_policy.operating_weekdays, effective_policy.holiday_country)

    result: dict[TimeSlot, AvailabilityStatus] = {}
    for slot in hourly_grid(resource.open_hour, resource.close_hour):
        if not operating or is_past(day, slot.start, now):
            result[slot] = AvailabilityStatus.CLOSED
            continue

        overlapping = [record for record in relevant if slots_overlap(record.slot, slot)]
        if any(record.account_id == requesting_account_id for record in overlapping):
            result[slot] = AvailabilityStatus.USER_BOOKING
        elif overlapping:
            result[slot] = AvailabilityStatus.BOOKED
        else:
            result[slot] = AvailabilityStatus.AVAILABLE
    return result


def compute_availability_range(
    resource: Resource,
    start_day: date,
    end_day: date,
    reservations: Iterable[ReservationRecord],
    requesting_account_id: str | None,
    now: datetime,
    policy: BookingPolicy | None = None,
) -> dict[date, dict[TimeSlot, AvailabilityStatus]]:
    if end_day < start_day:
        raise ValueError("end_day must not be earlier than start_day.")

    records = list(reservations)
    days: dict[date, dict[TimeSlot, AvailabilityStatus]] = {}
    cursor = start_day
    while cursor <= end_day:
        days[cursor] = compute_availability(resource, cursor, records, requesting_account_id, now, policy)
        cursor += timedelta(days=1)
    return days


def availability_to_dict(availability: dict[TimeSlot, AvailabilityStatus]) -> list[dict[str, str]]:
    return [
        {
            "start": slot.start.strftime("%H:%M"),
            "end": slot.end.strftime("%H:%M"),
            "status": status.value,
        }
        for slot, status in availability.items()
    ]
