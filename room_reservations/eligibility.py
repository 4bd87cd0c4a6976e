from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

DOCUMENTATION_REQUIRED = "documentation_required"


class TrustTier(str, Enum):
    STANDARD = "standard"
    TRUSTED = "trusted"
    VIP = "vip"
    ADMIN = "admin"


class DocumentationStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Account:
    account_id: str
    trust_tier: TrustTier = TrustTier.STANDARD
    documentation_status: DocumentationStatus = DocumentationStatus.NONE

    @property
    def is_admin(self) -> bool:
        return self.trust_tier is TrustTier.ADMIN


@dataclass(frozen=True)
class Eligible:
    eligible: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: str
    documentation_status: DocumentationStatus
    message: str
    eligible: bool = False


EligibilityResult = Union[Eligible, Rejected]


def evaluate(account: Account) -> EligibilityResult:
    return evaluate_status(account.documentation_status, account.trust_tier)


def evaluate_status(
    documentation_status: DocumentationStatus | str,
    trust_tier: TrustTier | str = TrustTier.STANDARD,
) -> EligibilityResult:
    """Decide whether an account may book at all.

    Only approved documentation grants eligibility. The trust tier is
    validated and accepted but does not gate booking under the current
    policy.
    """
    status = DocumentationStatus(documentation_status)
    TrustTier(trust_tier)

    if status is DocumentationStatus.APPROVED:
        return Eligible()
    if status is DocumentationStatus.NONE:
        message = "Upload your identification documents before booking."
    elif status is DocumentationStatus.PENDING:
        message = "Your documents are awaiting review."
    elif status is DocumentationStatus.REJECTED:
        message = "Your documents were rejected. Upload new documents to book."
    else:
        raise ValueError(f"Unhandled documentation status: {status!r}")
    return Rejected(reason=DOCUMENTATION_REQUIRED, documentation_status=status, message=message)
