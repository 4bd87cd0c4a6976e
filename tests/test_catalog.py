import tempfile
import unittest
from pathlib import Path
from unittest import mock

from room_reservations import (
    Account,
    DocumentationStatus,
    ReservationStorageError,
    Resource,
    TrustTier,
    YamlCatalog,
    seed_demo_catalog,
)


class TestYamlCatalog(unittest.TestCase):
    def test_seeded_catalog(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            catalog = YamlCatalog(Path(temp_dir) / "data")
            seed_demo_catalog(catalog)

            self.assertEqual([resource.resource_id for resource in catalog.list_resources()], ["R1", "R2", "R3", "R4"])
            self.assertEqual(catalog.get_resource("R4").hourly_price_cents, 40000)
            self.assertTrue(catalog.get_account("admin").is_admin)
            self.assertEqual(catalog.documentation_status("A4"), DocumentationStatus.PENDING)
            self.assertIsNone(catalog.documentation_status("missing"))

    def test_save_account_replaces_existing_row(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            catalog = YamlCatalog(Path(temp_dir) / "data")
            catalog.save_account(Account("A3", TrustTier.STANDARD, DocumentationStatus.PENDING))

            catalog.save_account(Account("A3", TrustTier.STANDARD, DocumentationStatus.APPROVED))

            self.assertEqual(catalog.get_account("A3").documentation_status, DocumentationStatus.APPROVED)
            self.assertIn("A3", (Path(temp_dir) / "data" / "accounts.yaml").read_text(encoding="utf-8"))

    def test_failed_save_leaves_catalog_file_intact(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            catalog = YamlCatalog(Path(temp_dir) / "data")
            seed_demo_catalog(catalog)
            before = catalog.accounts_file.read_text(encoding="utf-8")

            with mock.patch.object(Path, "replace", side_effect=OSError(28, "No space left on device")):
                with self.assertRaises(ReservationStorageError):
                    catalog.save_account(Account("A5", TrustTier.STANDARD, DocumentationStatus.APPROVED))

            self.assertEqual(catalog.accounts_file.read_text(encoding="utf-8"), before)
            self.assertIsNone(catalog.get_account("A5"))
            self.assertEqual(list(catalog.base_dir.glob("*.tmp")), [])

    def test_resource_defaults_and_validation(self) -> None:
        resource = Resource.from_dict({"resource_id": "R7"})

        self.assertEqual((resource.name, resource.open_hour, resource.close_hour), ("R7", 9, 18))
        with self.assertRaises(ValueError):
            Resource("R8", "Broken", 100, open_hour=18, close_hour=9)
        with self.assertRaises(ValueError):
            Resource("R9", "Negative", -1)


if __name__ == "__main__":
    unittest.main()
