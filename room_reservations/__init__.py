from .booking import TimeSlot, hourly_grid, is_operating_day, is_past, slots_overlap
from .eligibility import Account, DocumentationStatus, Eligible, Rejected, TrustTier, evaluate
from .config import AppSettings, BookingPolicy
from .yaml_store import (
    InsertOutcome,
    ReservationRecord,
    ReservationStatus,
    ReservationStorageError,
    ReservationYamlRepository,
)
from .catalog import Resource, YamlCatalog, seed_demo_catalog
from .availability import AvailabilityStatus, compute_availability, compute_availability_range
from .allocator import (
    AllocationError,
    AllocationErrorKind,
    AllocationResult,
    BookingAllocator,
    BookingRequest,
    CancellationErrorKind,
    CancellationResult,
    quote_price_cents,
)

__all__ = [
    "TimeSlot",
    "hourly_grid",
    "is_operating_day",
    "is_past",
    "slots_overlap",
    "Account",
    "DocumentationStatus",
    "Eligible",
    "Rejected",
    "TrustTier",
    "evaluate",
    "AppSettings",
    "BookingPolicy",
    "InsertOutcome",
    "ReservationRecord",
    "ReservationStatus",
    "ReservationStorageError",
    "ReservationYamlRepository",
    "Resource",
    "YamlCatalog",
    "seed_demo_catalog",
    "AvailabilityStatus",
    "compute_availability",
    "compute_availability_range",
    "AllocationError",
    "AllocationErrorKind",
    "AllocationResult",
    "BookingAllocator",
    "BookingRequest",
    "CancellationErrorKind",
    "CancellationResult",
    "quote_price_cents",
]
