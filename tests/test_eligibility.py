import unittest

from room_reservations import Account, DocumentationStatus, Eligible, Rejected, TrustTier, evaluate
from room_reservations.eligibility import DOCUMENTATION_REQUIRED, evaluate_status


class TestEligibility(unittest.TestCase):
    def test_approved_account_is_eligible(self) -> None:
        result = evaluate(Account("A1", TrustTier.TRUSTED, DocumentationStatus.APPROVED))

        self.assertIsInstance(result, Eligible)
        self.assertTrue(result.eligible)

    def test_every_tier_with_approved_documents_is_eligible(self) -> None:
        for tier in TrustTier:
            with self.subTest(tier=tier):
                self.assertIsInstance(evaluate(Account("A", tier, DocumentationStatus.APPROVED)), Eligible)

    def test_missing_documents_are_rejected_with_status(self) -> None:
        expectations = {
            DocumentationStatus.NONE: "Upload",
            DocumentationStatus.PENDING: "awaiting review",
            DocumentationStatus.REJECTED: "rejected",
        }
        for status, fragment in expectations.items():
            with self.subTest(status=status):
                result = evaluate(Account("A", TrustTier.VIP, status))

                self.assertIsInstance(result, Rejected)
                self.assertFalse(result.eligible)
                self.assertEqual(result.reason, DOCUMENTATION_REQUIRED)
                self.assertEqual(result.documentation_status, status)
                self.assertIn(fragment, result.message)

    def test_admin_tier_does_not_bypass_documentation(self) -> None:
        result = evaluate(Account("root", TrustTier.ADMIN, DocumentationStatus.PENDING))

        self.assertIsInstance(result, Rejected)

    def test_accepts_raw_strings(self) -> None:
        self.assertIsInstance(evaluate_status("approved", "standard"), Eligible)
        self.assertIsInstance(evaluate_status("pending", "trusted"), Rejected)

    def test_unknown_values_raise(self) -> None:
        with self.assertRaises(ValueError):
            evaluate_status("verified")
        with self.assertRaises(ValueError):
            evaluate_status("approved", "gold")


if __name__ == "__main__":
    unittest.main()
