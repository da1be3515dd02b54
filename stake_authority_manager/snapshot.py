"""Holder for the stake account snapshot currently under inspection."""

from __future__ import annotations

import logging
from typing import Optional

from .errors import NetworkError
from .models import StakeAccountSnapshot
from .rpc import AccountRecord, StakeRPCClient


logger = logging.getLogger(__name__)


def snapshot_from_record(record: AccountRecord) -> StakeAccountSnapshot:
    return StakeAccountSnapshot(
        address=record.address,
        balance_lamports=record.lamports,
        stake_authority=record.stake_authority,
        withdraw_authority=record.withdraw_authority,
    )


class StakeAccountInspector:
    """Owns the single snapshot shown to the user.

    ``refresh`` is the only writer. The snapshot is replaced whole, cleared
    when the account does not exist, and left untouched when the lookup
    fails.
    """

    def __init__(self, client: StakeRPCClient, commitment: str = "confirmed") -> None:
        self._client = client
        self._commitment = commitment
        self._snapshot: Optional[StakeAccountSnapshot] = None

    @property
    def snapshot(self) -> Optional[StakeAccountSnapshot]:
        return self._snapshot

    async def refresh(self, address: str) -> Optional[StakeAccountSnapshot]:
        address = address.strip()
        try:
            record = await self._client.lookup_account(address, self._commitment)
        except NetworkError as exc:
            logger.warning("Error fetching stake account %s: %s", address, exc)
            raise

        if record is None:
            logger.info("No account found at %s", address)
            self._snapshot = None
            return None

        snapshot = snapshot_from_record(record)
        self._snapshot = snapshot
        logger.info(
            "Loaded stake account %s balance=%d staker=%s withdrawer=%s",
            snapshot.address,
            snapshot.balance_lamports,
            snapshot.stake_authority,
            snapshot.withdraw_authority,
        )
        return snapshot
