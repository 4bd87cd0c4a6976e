from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any
from uuid import uuid4

from .booking import TimeSlot, is_operating_day, is_past
from .catalog import Resource, YamlCatalog
from .config import BookingPolicy
from .eligibility import Account, Eligible, Rejected, evaluate
from .logger import get_logger
from .yaml_store import ReservationRecord, ReservationYamlRepository

logger = get_logger(__name__)


class AllocationErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    NOT_ELIGIBLE = "not_eligible"
    SLOT_CONFLICT = "slot_conflict"
    NOT_FOUND = "not_found"


class CancellationErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_CANCELLED = "already_cancelled"
    FORBIDDEN = "forbidden"
    TOO_LATE = "too_late"


@dataclass(frozen=True)
class BookingRequest:
    resource_id: str
    account_id: str
    day: date
    slot: TimeSlot
    notes: str | None = None

    @staticmethod
    def from_fields(
        resource_id: str,
        account_id: str,
        day: str,
        start_time: str,
        end_time: str,
        notes: str | None = None,
    ) -> "BookingRequest":
        """Build a request from wire values; raises ValueError on bad input."""
        resource_id = str(resource_id or "").strip()
        account_id = str(account_id or "").strip()
        if not resource_id:
            raise ValueError("resource_id must not be empty")
        if not account_id:
            raise ValueError("account_id must not be empty")
        try:
            parsed_day = date.fromisoformat(str(day))
        except ValueError as error:
            raise ValueError(f"Expected date as YYYY-MM-DD, got {day!r}.") from error
        slot = TimeSlot.from_strings(str(start_time), str(end_time))
        return BookingRequest(resource_id, account_id, parsed_day, slot, notes or None)


@dataclass(frozen=True)
class AllocationError:
    kind: AllocationErrorKind
    message: str
    reason: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AllocationResult:
    reservation: ReservationRecord | None = None
    error: AllocationError | None = None

    @property
    def ok(self) -> bool:
        return self.reservation is not None


@dataclass(frozen=True)
class CancellationResult:
    reservation: ReservationRecord | None = None
    error: CancellationErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.reservation is not None


def quote_price_cents(resource: Resource, slot: TimeSlot) -> int:
    return resource.hourly_price_cents * slot.duration_hours


def _failure(kind: AllocationErrorKind, message: str, **kwargs: Any) -> AllocationResult:
    return AllocationResult(error=AllocationError(kind=kind, message=message, **kwargs))


class BookingAllocator:
    """Grants reservations against the ledger.

    Checks run in a fixed order: existence, request validation,
    eligibility, then the ledger's atomic conflict check and insert.
    Nothing is written unless every earlier check passed.
    """

    def __init__(
        self,
        ledger: ReservationYamlRepository,
        catalog: YamlCatalog,
        policy: BookingPolicy | None = None,
    ) -> None:
        self.ledger = ledger
        self.catalog = catalog
        self.policy = policy or BookingPolicy()

    def allocate(self, request: BookingRequest, now: datetime) -> AllocationResult:
        resource = self.catalog.get_resource(request.resource_id)
        if resource is None:
            return _failure(AllocationErrorKind.NOT_FOUND, f"Resource {request.resource_id} not found.")
        account = self.catalog.get_account(request.account_id)
        if account is None:
            return _failure(AllocationErrorKind.NOT_FOUND, f"Account {request.account_id} not found.")

        problem = self._validate(request, resource, account, now)
        if problem is not None:
            return _failure(AllocationErrorKind.INVALID_REQUEST, problem)

        eligibility = evaluate(account)
        if isinstance(eligibility, Rejected):
            logger.info("Booking refused for %s: %s", account.account_id, eligibility.documentation_status.value)
            return _failure(
                AllocationErrorKind.NOT_ELIGIBLE,
                eligibility.message,
                reason=eligibility.reason,
                detail={"documentation_status": eligibility.documentation_status.value},
            )
        if not isinstance(eligibility, Eligible):
            raise TypeError(f"Unexpected eligibility result: {eligibility!r}")

        record = ReservationRecord(
            reservation_id=str(uuid4()),
            resource_id=resource.resource_id,
            account_id=account.account_id,
            day=request.day,
            slot=request.slot,
            created_at=now.replace(microsecond=0),
            notes=request.notes,
        )
        outcome = self.ledger.insert_if_no_conflict(record)
        if not outcome.ok:
            logger.info(
                "Slot conflict on %s %s %s",
                resource.resource_id,
                request.day.isoformat(),
                request.slot.label(),
            )
            return _failure(
                AllocationErrorKind.SLOT_CONFLICT,
                "The requested slot is no longer available.",
                detail={"conflicting_slots": [item.slot.label() for item in outcome.conflicts]},
            )

        logger.info("Reservation %s created for %s on %s", record.reservation_id, account.account_id, resource.resource_id)
        return AllocationResult(reservation=outcome.reservation)

    def allocate_from_fields(
        self,
        resource_id: str,
        account_id: str,
        day: str,
        start_time: str,
        end_time: str,
        now: datetime,
        notes: str | None = None,
    ) -> AllocationResult:
        try:
            request = BookingRequest.from_fields(resource_id, account_id, day, start_time, end_time, notes)
        except ValueError as error:
            return _failure(AllocationErrorKind.INVALID_REQUEST, str(error))
        return self.allocate(request, now)

    def _validate(self, request: BookingRequest, resource: Resource, account: Account, now: datetime) -> str | None:
        slot = request.slot
        if slot.start.hour < resource.open_hour or slot.end.hour > resource.close_hour:
            return f"Slot must fall within operating hours {resource.open_hour:02d}:00-{resource.close_hour:02d}:00."
        if not is_operating_day(request.day, self.policy.operating_weekdays, self.policy.holiday_country):
            return "The resource is closed on the requested date."
        if is_past(request.day, slot.start, now):
            return "Reservations cannot start in the past or in the current hour."
        if slot.duration_hours > self.policy.max_booking_duration_hours:
            return f"Reservations cannot exceed {self.policy.max_booking_duration_hours} consecutive hours."

        starts_at = datetime.combine(request.day, slot.start)
        if starts_at - now < timedelta(days=self.policy.advance_booking_days):
            return f"Reservations must be made at least {self.policy.advance_booking_days} days in advance."

        active = [
            record
            for record in self.ledger.list_by_account(account.account_id)
            if record.is_confirmed and datetime.combine(record.day, record.slot.end) > now
        ]
        if len(active) >= self.policy.max_active_bookings:
            return f"You have reached the limit of {self.policy.max_active_bookings} active reservations."
        return None

    def cancel(self, reservation_id: str, requesting_account_id: str, now: datetime) -> CancellationResult:
        record = self.ledger.get(reservation_id)
        if record is None:
            return CancellationResult(error=CancellationErrorKind.NOT_FOUND, message="Reservation not found.")

        requester = self.catalog.get_account(requesting_account_id)
        is_admin = requester is not None and requester.is_admin
        if record.account_id != requesting_account_id and not is_admin:
            return CancellationResult(
                error=CancellationErrorKind.FORBIDDEN,
                message="Not allowed to cancel this reservation.",
            )
        if not record.is_confirmed:
            return CancellationResult(
                error=CancellationErrorKind.ALREADY_CANCELLED,
                message="Reservation is already cancelled.",
            )

        notice = timedelta(hours=self.policy.cancellation_hours_notice)
        if not is_admin and record.starts_at() - now < notice:
            return CancellationResult(
                error=CancellationErrorKind.TOO_LATE,
                message=f"Reservations can only be cancelled at least {self.policy.cancellation_hours_notice} hours in advance.",
            )

        try:
            cancelled = self.ledger.cancel(reservation_id, now=now)
        except KeyError:
            return CancellationResult(error=CancellationErrorKind.NOT_FOUND, message="Reservation not found.")
        except ValueError:
            return CancellationResult(
                error=CancellationErrorKind.ALREADY_CANCELLED,
                message="Reservation is already cancelled.",
            )

        logger.info("Reservation %s cancelled by %s", reservation_id, requesting_account_id)
        return CancellationResult(reservation=cancelled)
