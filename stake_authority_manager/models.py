"""Domain types shared across the workflow."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


LAMPORTS_PER_TOKEN = 1_000_000_000
UNKNOWN_AUTHORITY_LABEL = "Unknown"


def lamports_to_tokens(value: Optional[int]) -> float:
    return 0.0 if value in (None, 0) else value / LAMPORTS_PER_TOKEN


class AuthorityKind(Enum):
    STAKER = "staker"
    WITHDRAWER = "withdrawer"

    @property
    def label(self) -> str:
        return "stake" if self is AuthorityKind.STAKER else "withdraw"


@dataclass(frozen=True)
class StakeAccountSnapshot:
    """Complete view of one stake account as last read from the chain.

    An authority of ``None`` means the account data could not be parsed for
    that role. It never compares equal to a real identity.
    """

    address: str
    balance_lamports: int
    stake_authority: Optional[str]
    withdraw_authority: Optional[str]

    @property
    def balance_tokens(self) -> float:
        return lamports_to_tokens(self.balance_lamports)

    def authority_for(self, kind: AuthorityKind) -> Optional[str]:
        if kind is AuthorityKind.STAKER:
            return self.stake_authority
        return self.withdraw_authority


@dataclass(frozen=True)
class AuthorityChangeRequest:
    kind: AuthorityKind
    target_account: str
    current_authority_signer: Optional[str]
    proposed_authority: str


class OutcomeStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class TransactionOutcome:
    status: OutcomeStatus = OutcomeStatus.PENDING
    transaction_id: Optional[str] = None
    reason: Optional[str] = None
    indeterminate: bool = False
    error_kind: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status is OutcomeStatus.CONFIRMED

    @property
    def message(self) -> str:
        if self.status is OutcomeStatus.CONFIRMED:
            return self.reason or f"Transaction confirmed: {self.transaction_id}"
        if self.status is OutcomeStatus.PENDING:
            return "Authority change in progress."
        return self.reason or "Authority change failed."
