"""Admissibility checks for an authority change.

Pure functions: no network access and no mutation of their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from .models import AuthorityChangeRequest, AuthorityKind, StakeAccountSnapshot


LOOKUP_FIRST = "Lookup a stake account first."
INVALID_AUTHORITY_TARGET = "Invalid authority: must be a wallet pubkey, not the stake account address."


def not_current_authority(kind: AuthorityKind) -> str:
    return f"Connected wallet is not the current {kind.label} authority."


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.accepted


ACCEPTED = ValidationResult(accepted=True)


def is_valid_pubkey(value: str) -> bool:
    try:
        Pubkey.from_string(value)
    except ValueError:
        return False
    return True


def holds_authority(
    snapshot: Optional[StakeAccountSnapshot],
    kind: AuthorityKind,
    acting_identity: Optional[str],
) -> bool:
    if snapshot is None or not acting_identity:
        return False
    current = snapshot.authority_for(kind)
    return current is not None and current == acting_identity


def validate(
    snapshot: Optional[StakeAccountSnapshot],
    request: AuthorityChangeRequest,
    acting_identity: Optional[str],
) -> ValidationResult:
    if snapshot is None or snapshot.address != request.target_account:
        return ValidationResult(False, LOOKUP_FIRST)

    proposed = request.proposed_authority
    if not proposed or proposed == request.target_account or not is_valid_pubkey(proposed):
        return ValidationResult(False, INVALID_AUTHORITY_TARGET)

    if not holds_authority(snapshot, request.kind, acting_identity):
        return ValidationResult(False, not_current_authority(request.kind))
    # the authority instruction is signed by the claimed signer, so it must be us
    if request.current_authority_signer != acting_identity:
        return ValidationResult(False, not_current_authority(request.kind))

    return ACCEPTED


def can_change(
    snapshot: Optional[StakeAccountSnapshot],
    kind: AuthorityKind,
    acting_identity: Optional[str],
) -> bool:
    """Whether the change control for ``kind`` should be offered."""
    return holds_authority(snapshot, kind, acting_identity)
