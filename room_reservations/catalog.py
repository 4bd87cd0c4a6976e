from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any

import yaml

from .eligibility import Account, DocumentationStatus, TrustTier
from .yaml_store import ReservationStorageError, write_yaml_list


@dataclass(frozen=True)
class Resource:
    resource_id: str
    name: str
    hourly_price_cents: int
    open_hour: int = 9
    close_hour: int = 18

    def __post_init__(self) -> None:
        if not 0 <= self.open_hour < self.close_hour <= 23:
            raise ValueError(f"Invalid operating hours {self.open_hour}-{self.close_hour}.")
        if self.hourly_price_cents < 0:
            raise ValueError("hourly_price_cents must not be negative.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "name": self.name,
            "hourly_price_cents": self.hourly_price_cents,
            "open_hour": self.open_hour,
            "close_hour": self.close_hour,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Resource":
        return Resource(
            resource_id=str(data["resource_id"]),
            name=str(data.get("name", data["resource_id"])),
            hourly_price_cents=int(data.get("hourly_price_cents", 0)),
            open_hour=int(data.get("open_hour", 9)),
            close_hour=int(data.get("close_hour", 18)),
        )


def account_to_dict(account: Account) -> dict[str, str]:
    return {
        "account_id": account.account_id,
        "trust_tier": account.trust_tier.value,
        "documentation_status": account.documentation_status.value,
    }


def account_from_dict(data: dict[str, Any]) -> Account:
    return Account(
        account_id=str(data["account_id"]),
        trust_tier=TrustTier(str(data.get("trust_tier", TrustTier.STANDARD.value))),
        documentation_status=DocumentationStatus(str(data.get("documentation_status", DocumentationStatus.NONE.value))),
    )


class YamlCatalog:
    """Rooms and accounts managed outside the booking core.

    The allocator only reads from here. ``save_*`` exist for administrative
    tooling and test fixtures.
    """

    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.resources_file = self.base_dir / "resources.yaml"
        self.accounts_file = self.base_dir / "accounts.yaml"
        self._write_lock = Lock()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.resources_file, self.accounts_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_rows(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as error:
            raise ReservationStorageError(f"Failed to read catalog file: {path}") from error
        if not isinstance(payload, list):
            return []
        return [row for row in payload if isinstance(row, dict)]

    def _upsert(self, path: Path, key: str, row: dict[str, Any]) -> None:
        with self._write_lock:
            rows = [existing for existing in self._read_rows(path) if str(existing.get(key)) != row[key]]
            rows.append(row)
            write_yaml_list(path, rows)

    def list_resources(self) -> list[Resource]:
        resources = [Resource.from_dict(row) for row in self._read_rows(self.resources_file)]
        return sorted(resources, key=lambda resource: resource.resource_id)

    def get_resource(self, resource_id: str) -> Resource | None:
        for row in self._read_rows(self.resources_file):
            if str(row.get("resource_id")) == resource_id:
                return Resource.from_dict(row)
        return None

    def get_account(self, account_id: str) -> Account | None:
        for row in self._read_rows(self.accounts_file):
            if str(row.get("account_id")) == account_id:
                return account_from_dict(row)
        return None

    def documentation_status(self, account_id: str) -> DocumentationStatus | None:
        account = self.get_account(account_id)
        return account.documentation_status if account else None

    def save_resource(self, resource: Resource) -> Resource:
        self._upsert(self.resources_file, "resource_id", resource.to_dict())
        return resource

    def save_account(self, account: Account) -> Account:
        self._upsert(self.accounts_file, "account_id", account_to_dict(account))
        return account


def seed_demo_catalog(catalog: YamlCatalog) -> None:
    for index, price in enumerate([25000, 25000, 30000, 40000], start=1):
        catalog.save_resource(Resource(resource_id=f"R{index}", name=f"Room {index}", hourly_price_cents=price))

    catalog.save_account(Account("A1", TrustTier.TRUSTED, DocumentationStatus.APPROVED))
    catalog.save_account(Account("A2", TrustTier.STANDARD, DocumentationStatus.APPROVED))
    catalog.save_account(Account("A3", TrustTier.STANDARD, DocumentationStatus.NONE))
    catalog.save_account(Account("A4", TrustTier.VIP, DocumentationStatus.PENDING))
    catalog.save_account(Account("admin", TrustTier.ADMIN, DocumentationStatus.APPROVED))
