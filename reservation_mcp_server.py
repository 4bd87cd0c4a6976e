from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from room_reservations import (
    AppSettings,
    BookingAllocator,
    ReservationYamlRepository,
    YamlCatalog,
    compute_availability,
)
from room_reservations.availability import availability_to_dict
from room_reservations.logger import configure_logging
from room_reservations.web_app import serialize_reservation

mcp = FastMCP(
    "Room Booking MCP Server",
    instructions="Check room availability and create or cancel room reservations.",
    json_response=True,
)

CONFIG_PATH = Path(__file__).parent / "config.yaml"
SETTINGS = AppSettings.load_from_yaml(CONFIG_PATH) if CONFIG_PATH.exists() else AppSettings(data_dir=str(Path(__file__).parent / "data"))
LEDGER = ReservationYamlRepository(SETTINGS.data_dir)
CATALOG = YamlCatalog(SETTINGS.data_dir)
ALLOCATOR = BookingAllocator(LEDGER, CATALOG, SETTINGS.policy)


@mcp.resource("reservation://rooms")
async def list_rooms() -> list[dict[str, Any]]:
    """List bookable rooms with their operating hours and hourly price."""
    return [resource.to_dict() for resource in CATALOG.list_resources()]


@mcp.tool()
def check_availability(resource_id: str, day: str, account_id: str | None = None) -> dict[str, Any]:
    """Return the hourly availability grid of a room for one date (YYYY-MM-DD)."""
    try:
        requested_day = date.fromisoformat(day)
    except ValueError:
        return {"ok": False, "message": "Expected day as YYYY-MM-DD."}
    resource = CATALOG.get_resource(resource_id)
    if resource is None:
        return {"ok": False, "message": "Resource not found."}
    slots = compute_availability(
        resource,
        requested_day,
        LEDGER.list_by_resource(resource_id),
        account_id,
        datetime.now(),
        SETTINGS.policy,
    )
    return {"ok": True, "resource_id": resource_id, "date": day, "slots": availability_to_dict(slots)}


@mcp.tool()
def create_booking(
    resource_id: str,
    account_id: str,
    day: str,
    start_time: str,
    end_time: str,
    notes: str | None = None,
) -> dict[str, Any]:
    """Reserve a room for an hourly slot, e.g. start_time=10:00 end_time=11:00."""
    result = ALLOCATOR.allocate_from_fields(resource_id, account_id, day, start_time, end_time, datetime.now(), notes)
    if result.error is not None:
        return {"ok": False, "error": result.error.kind.value, "message": result.error.message, **result.error.detail}
    return {"ok": True, "reservation": serialize_reservation(result.reservation)}


@mcp.tool()
def list_bookings(account_id: str | None = None, resource_id: str | None = None) -> dict[str, Any]:
    """List reservations of an account or of a room, ordered by date."""
    if account_id:
        records = LEDGER.list_by_account(account_id)
    elif resource_id:
        records = LEDGER.list_by_resource(resource_id)
    else:
        return {"ok": False, "message": "account_id or resource_id is required."}
    return {"ok": True, "reservations": [serialize_reservation(record) for record in records]}


@mcp.tool()
def cancel_booking(reservation_id: str, account_id: str) -> dict[str, Any]:
    """Cancel a confirmed reservation on behalf of its owner or an admin."""
    result = ALLOCATOR.cancel(reservation_id, account_id, datetime.now())
    if result.error is not None:
        return {"ok": False, "error": result.error.value, "message": result.message}
    return {"ok": True, "reservation": serialize_reservation(result.reservation)}


def main() -> None:
    configure_logging(SETTINGS.log_level)
    mcp.run()


if __name__ == "__main__":
    main()
