from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .allocator import AllocationErrorKind, BookingAllocator, CancellationErrorKind, quote_price_cents
from .availability import availability_to_dict, compute_availability_range
from .catalog import YamlCatalog
from .config import AppSettings, BookingPolicy
from .logger import configure_logging, get_logger
from .yaml_store import ReservationRecord, ReservationStatus, ReservationStorageError, ReservationYamlRepository

logger = get_logger(__name__)

MAX_AVAILABILITY_DAYS = 31

_ALLOCATION_STATUS = {
    AllocationErrorKind.INVALID_REQUEST: 400,
    AllocationErrorKind.NOT_ELIGIBLE: 403,
    AllocationErrorKind.NOT_FOUND: 404,
    AllocationErrorKind.SLOT_CONFLICT: 409,
}

_CANCELLATION_STATUS = {
    CancellationErrorKind.NOT_FOUND: 404,
    CancellationErrorKind.FORBIDDEN: 403,
    CancellationErrorKind.ALREADY_CANCELLED: 400,
    CancellationErrorKind.TOO_LATE: 400,
}


def serialize_reservation(record: ReservationRecord) -> dict[str, Any]:
    return {
        "reservation_id": record.reservation_id,
        "resource_id": record.resource_id,
        "account_id": record.account_id,
        "date": record.day.isoformat(),
        "start_time": record.slot.start.strftime("%H:%M"),
        "end_time": record.slot.end.strftime("%H:%M"),
        "status": record.status.value,
        "notes": record.notes,
        "created_at": record.created_at.isoformat(timespec="seconds"),
    }


def create_app(
    data_dir: str | Path = "data",
    now_provider: Callable[[], datetime] | None = None,
    policy: BookingPolicy | None = None,
    log_level: str | None = None,
) -> Flask:
    configure_logging(log_level)
    app = Flask(__name__)
    ledger = ReservationYamlRepository(data_dir)
    catalog = YamlCatalog(data_dir)
    effective_policy = policy or BookingPolicy()
    allocator = BookingAllocator(ledger, catalog, effective_policy)
    clock: Callable[[], datetime] = now_provider or datetime.now

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.errorhandler(ReservationStorageError)
    def storage_failure(error: ReservationStorageError) -> Any:
        logger.error("Storage failure: %s", error)
        return jsonify({"ok": False, "message": "Storage temporarily unavailable, retry the request."}), 500

    @app.get("/api/resources")
    def list_resources() -> Any:
        return jsonify({"ok": True, "resources": [resource.to_dict() for resource in catalog.list_resources()]})

    @app.post("/api/bookings")
    def create_booking() -> Any:
        payload = request.get_json(silent=True) or {}
        result = allocator.allocate_from_fields(
            resource_id=str(payload.get("resource_id", "")),
            account_id=str(payload.get("account_id", "")),
            day=str(payload.get("date", "")),
            start_time=str(payload.get("start_time", "")),
            end_time=str(payload.get("end_time", "")),
            now=clock(),
            notes=(str(payload["notes"]) if payload.get("notes") else None),
        )

        if result.error is not None:
            error = result.error
            body: dict[str, Any] = {
                "ok": False,
                "error": error.kind.value,
                "message": error.message,
                **error.detail,
            }
            if error.kind is AllocationErrorKind.NOT_ELIGIBLE:
                body["reason"] = error.reason
                body["documentation_required"] = True
            return jsonify(body), _ALLOCATION_STATUS[error.kind]

        reservation = result.reservation
        resource = catalog.get_resource(reservation.resource_id)
        amount = quote_price_cents(resource, reservation.slot) if resource else None
        return jsonify({"ok": True, "reservation": serialize_reservation(reservation), "amount_cents": amount}), 201

    @app.get("/api/availability")
    def get_availability() -> Any:
        resource_id = str(request.args.get("resource_id", "")).strip()
        account_id = str(request.args.get("account_id", "")).strip() or None
        single_day = request.args.get("date")
        try:
            if single_day:
                start_day = end_day = date.fromisoformat(single_day)
            else:
                start_day = date.fromisoformat(str(request.args.get("start_date", "")))
                end_day = date.fromisoformat(str(request.args.get("end_date", "")))
        except ValueError:
            return jsonify({"ok": False, "message": "Provide date or start_date/end_date as YYYY-MM-DD."}), 400

        if end_day < start_day or (end_day - start_day).days >= MAX_AVAILABILITY_DAYS:
            return jsonify({"ok": False, "message": f"Date range must span 1 to {MAX_AVAILABILITY_DAYS} days."}), 400

        resource = catalog.get_resource(resource_id)
        if resource is None:
            return jsonify({"ok": False, "message": "Resource not found."}), 404

        days = compute_availability_range(
            resource,
            start_day,
            end_day,
            ledger.list_by_resource(resource.resource_id),
            account_id,
            clock(),
            effective_policy,
        )
        return jsonify(
            {
                "ok": True,
                "resource_id": resource.resource_id,
                "days": [{"date": day.isoformat(), "slots": availability_to_dict(slots)} for day, slots in days.items()],
            }
        )

    @app.get("/api/bookings")
    def list_bookings() -> Any:
        account_id = str(request.args.get("account_id", "")).strip()
        resource_id = str(request.args.get("resource_id", "")).strip()
        status = request.args.get("status")

        if status is not None:
            try:
                wanted_status = ReservationStatus(status)
            except ValueError:
                return jsonify({"ok": False, "message": "Invalid status value."}), 400
        else:
            wanted_status = None

        if account_id:
            records = ledger.list_by_account(account_id)
        elif resource_id:
            records = ledger.list_by_resource(resource_id)
        else:
            return jsonify({"ok": False, "message": "account_id or resource_id is required."}), 400

        if wanted_status is not None:
            records = [record for record in records if record.status is wanted_status]
        return jsonify({"ok": True, "reservations": [serialize_reservation(record) for record in records]})

    @app.get("/api/bookings/<reservation_id>")
    def get_booking(reservation_id: str) -> Any:
        record = ledger.get(reservation_id)
        if record is None:
            return jsonify({"ok": False, "message": "Reservation not found."}), 404
        return jsonify({"ok": True, "reservation": serialize_reservation(record)})

    @app.post("/api/bookings/<reservation_id>/cancel")
    def cancel_booking(reservation_id: str) -> Any:
        payload = request.get_json(silent=True) or {}
        account_id = str(payload.get("account_id", "")).strip()
        if not account_id:
            return jsonify({"ok": False, "message": "account_id is required."}), 400

        result = allocator.cancel(reservation_id, account_id, now=clock())
        if result.error is not None:
            return jsonify({"ok": False, "error": result.error.value, "message": result.message}), _CANCELLATION_STATUS[result.error]
        return jsonify({"ok": True, "reservation": serialize_reservation(result.reservation)})

    return app


def create_app_from_settings(
    settings: AppSettings,
    now_provider: Callable[[], datetime] | None = None,
) -> Flask:
    return create_app(settings.data_dir, now_provider=now_provider, policy=settings.policy, log_level=settings.log_level)


if __name__ == "__main__":
    config_path = Path("config.yaml")
    settings = AppSettings.load_from_yaml(config_path) if config_path.exists() else AppSettings()
    app = create_app_from_settings(settings)
    app.run(host="127.0.0.1", port=5000, debug=False)
