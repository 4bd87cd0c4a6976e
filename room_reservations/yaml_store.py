from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from threading import Lock, RLock
from typing import Any
from urllib.parse import quote
import shutil

import yaml

from .booking import TimeSlot, slots_overlap
from .logger import get_logger

logger = get_logger(__name__)

_FILE_LOCKS: dict[str, RLock] = {}
_FILE_LOCKS_GUARD = Lock()


class ReservationStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ReservationRecord:
    reservation_id: str
    resource_id: str
    account_id: str
    day: date
    slot: TimeSlot
    created_at: datetime
    status: ReservationStatus = ReservationStatus.CONFIRMED
    notes: str | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.status is ReservationStatus.CONFIRMED

    def starts_at(self) -> datetime:
        return datetime.combine(self.day, self.slot.start)

    def to_dict(self) -> dict[str, str]:
        payload = {
            "reservation_id": self.reservation_id,
            "resource_id": self.resource_id,
            "account_id": self.account_id,
            "date": self.day.isoformat(),
            "start": self.slot.start.strftime("%H:%M"),
            "end": self.slot.end.strftime("%H:%M"),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(timespec="seconds"),
        }
        if self.notes is not None:
            payload["notes"] = self.notes
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ReservationRecord":
        return ReservationRecord(
            reservation_id=str(data["reservation_id"]),
            resource_id=str(data["resource_id"]),
            account_id=str(data["account_id"]),
            day=date.fromisoformat(str(data["date"])),
            slot=TimeSlot.from_strings(str(data["start"]), str(data["end"])),
            status=ReservationStatus(str(data.get("status", ReservationStatus.CONFIRMED.value))),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            notes=(str(data.get("notes")) if data.get("notes") is not None else None),
        )


@dataclass(frozen=True)
class InsertOutcome:
    reservation: ReservationRecord | None = None
    conflicts: tuple[ReservationRecord, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.reservation is not None


class ReservationStorageError(RuntimeError):
    pass


class ReservationYamlRepository:
    """Durable reservation ledger kept as one YAML file per resource.

    Each resource file is guarded by its own lock, and every conflict check
    for a resource runs under that lock together with the write that
    follows it. Allocations against different resources never share a lock.
    Records are never deleted; cancellation only flips their status.
    """

    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.ledger_dir = self.base_dir / "ledger"
        self.log_file = self.base_dir / "reservation_events.yaml"
        self._ensure_files()
        self._log_lock = _file_lock(self.log_file)

    def _ensure_files(self) -> None:
        self.ledger_dir.mkdir(parents=True, exist_ok=True)
        if not self.log_file.exists():
            self.log_file.write_text("[]\n", encoding="utf-8")

    def _ledger_path(self, resource_id: str) -> Path:
        return self.ledger_dir / f"{quote(resource_id, safe='')}.yaml"

    def _resource_lock(self, resource_id: str) -> RLock:
        return _file_lock(self._ledger_path(resource_id))

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as error:
            raise ReservationStorageError(f"Failed to read YAML file: {path}") from error

        try:
            payload = yaml.safe_load(text)
        except yaml.YAMLError as error:
            return self._handle_corrupted_yaml(path, error)

        if payload is None:
            return []
        if not isinstance(payload, list):
            return self._handle_corrupted_yaml(path, ValueError("top-level YAML is not a list"))

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            elif path != self.log_file:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _handle_corrupted_yaml(self, path: Path, error: Exception) -> list[dict[str, Any]]:
        """Back up an unparsable file.

        The event log is reset and keeps going. A ledger file is left as it
        is and the read fails, since its reservations cannot be checked.
        """
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.name}.corrupt.{timestamp}")
        try:
            shutil.copy2(path, backup_path)
        except OSError as copy_error:
            logger.warning("Could not back up corrupted file %s: %s", path, copy_error)

        if path == self.log_file:
            logger.warning("Recovered corrupted event log %s (%s)", path, error)
            path.write_text("[]\n", encoding="utf-8")
            return []

        logger.error("Ledger file %s is corrupted (%s)", path, error)
        self._log_event(
            "LEDGER_CORRUPTED",
            {
                "file": str(path.name),
                "backup": str(backup_path.name),
                "reason": str(error),
            },
        )
        raise ReservationStorageError(f"Ledger file is corrupted: {path}") from error

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        with self._log_lock:
            events = self._read_yaml_list(self.log_file)
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            write_yaml_list(self.log_file, events)

    def _load_resource(self, resource_id: str) -> list[ReservationRecord]:
        path = self._ledger_path(resource_id)
        return _parse_rows(path, self._read_yaml_list(path))

    def _load_all(self) -> list[ReservationRecord]:
        records: list[ReservationRecord] = []
        for path in sorted(self.ledger_dir.glob("*.yaml")):
            records.extend(_parse_rows(path, self._read_yaml_list(path)))
        return records

    def find_confirmed_overlapping(self, resource_id: str, day: date, slot: TimeSlot) -> list[ReservationRecord]:
        return _confirmed_overlaps(self._load_resource(resource_id), day, slot)

    def insert_if_no_conflict(self, record: ReservationRecord) -> InsertOutcome:
        """Check for overlapping confirmed reservations and insert, as one step.

        Re-inserting a record whose id is already stored with identical
        fields returns the stored record, so a retried write is harmless.
        """
        if not record.is_confirmed:
            raise ValueError("Only confirmed reservations can be inserted.")

        path = self._ledger_path(record.resource_id)
        with self._resource_lock(record.resource_id):
            rows = self._read_yaml_list(path)
            existing = _parse_rows(path, rows)

            for stored in existing:
                if stored.reservation_id == record.reservation_id:
                    if stored == record:
                        return InsertOutcome(reservation=stored)
                    raise ValueError(f"reservation_id {record.reservation_id} already exists.")

            conflicts = _confirmed_overlaps(existing, record.day, record.slot)
            if not conflicts:
                rows.append(record.to_dict())
                write_yaml_list(path, rows)

        if conflicts:
            self._log_event(
                "RESERVATION_CONFLICT",
                {
                    "resource_id": record.resource_id,
                    "account_id": record.account_id,
                    "date": record.day.isoformat(),
                    "slot": record.slot.label(),
                    "conflicting_ids": [item.reservation_id for item in conflicts],
                },
                record.created_at,
            )
            return InsertOutcome(conflicts=tuple(conflicts))

        self._log_event(
            "RESERVATION_CREATED",
            {
                "reservation_id": record.reservation_id,
                "resource_id": record.resource_id,
                "account_id": record.account_id,
                "date": record.day.isoformat(),
                "slot": record.slot.label(),
                "notes": record.notes,
            },
            record.created_at,
        )
        return InsertOutcome(reservation=record)

    def cancel(self, reservation_id: str, now: datetime | None = None) -> ReservationRecord:
        """Flip a confirmed reservation to cancelled.

        Raises KeyError when the id is unknown and ValueError when the
        reservation is already cancelled.
        """
        current = self.get(reservation_id)
        if current is None:
            raise KeyError(reservation_id)

        path = self._ledger_path(current.resource_id)
        with self._resource_lock(current.resource_id):
            rows = self._read_yaml_list(path)
            found_index = -1
            for index, row in enumerate(rows):
                if str(row.get("reservation_id")) == reservation_id:
                    found_index = index
                    break
            if found_index < 0:
                raise KeyError(reservation_id)

            stored = _parse_rows(path, rows)[found_index]
            if not stored.is_confirmed:
                raise ValueError("Reservation is already cancelled.")

            cancelled = replace(stored, status=ReservationStatus.CANCELLED)
            rows[found_index] = cancelled.to_dict()
            write_yaml_list(path, rows)

        self._log_event(
            "RESERVATION_CANCELLED",
            {
                "reservation_id": reservation_id,
                "resource_id": cancelled.resource_id,
                "date": cancelled.day.isoformat(),
                "slot": cancelled.slot.label(),
            },
            now,
        )
        return cancelled

    def get(self, reservation_id: str) -> ReservationRecord | None:
        for record in self._load_all():
            if record.reservation_id == reservation_id:
                return record
        return None

    def list_by_resource(self, resource_id: str) -> list[ReservationRecord]:
        return sorted(self._load_resource(resource_id), key=_ledger_order)

    def list_by_account(self, account_id: str) -> list[ReservationRecord]:
        owned = [record for record in self._load_all() if record.account_id == account_id]
        return sorted(owned, key=_ledger_order)

    def read_events(self) -> list[dict[str, Any]]:
        with self._log_lock:
            return self._read_yaml_list(self.log_file)


def _file_lock(path: Path) -> RLock:
    # Shared by every repository instance in the process that opens the same file.
    key = str(path.resolve())
    with _FILE_LOCKS_GUARD:
        lock = _FILE_LOCKS.get(key)
        if lock is None:
            lock = RLock()
            _FILE_LOCKS[key] = lock
        return lock


def _confirmed_overlaps(records: list[ReservationRecord], day: date, slot: TimeSlot) -> list[ReservationRecord]:
    return [
        record
        for record in records
        if record.is_confirmed and record.day == day and slots_overlap(record.slot, slot)
    ]


def _ledger_order(record: ReservationRecord) -> tuple[date, TimeSlot, str]:
    return (record.day, record.slot, record.resource_id)


def _parse_rows(path: Path, rows: list[dict[str, Any]]) -> list[ReservationRecord]:
    records: list[ReservationRecord] = []
    for index, row in enumerate(rows):
        try:
            records.append(ReservationRecord.from_dict(row))
        except (KeyError, TypeError, ValueError) as error:
            raise ReservationStorageError(f"Unreadable reservation row {index} in {path}: {error!r}") from error
    return records


def write_yaml_list(path: Path, rows: list[dict[str, Any]]) -> None:
    """Write ``rows`` to a temp file next to ``path`` and swap it in."""
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
        temp_path.replace(path)
    except OSError as error:
        raise ReservationStorageError(f"Failed to write YAML file: {path}") from error
    finally:
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)
