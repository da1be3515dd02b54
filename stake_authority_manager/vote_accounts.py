"""Validator lookup by vote address."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from .config import safe_int
from .errors import NetworkError
from .models import lamports_to_tokens
from .rpc import StakeRPCClient


logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class ValidatorRow:
    vote_address: str
    commission: str
    stake: str
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_validator_row(
    vote_address: str,
    vote_accounts: Dict[str, List[Dict[str, Any]]],
    token_symbol: str,
) -> ValidatorRow:
    entry: Optional[Dict[str, Any]] = None
    status = "Not Found"
    for category, label in (("current", "Active"), ("delinquent", "Delinquent")):
        entry = next(
            (item for item in vote_accounts.get(category, []) if item.get("votePubkey") == vote_address),
            None,
        )
        if entry is not None:
            status = label
            break

    if entry is None:
        return ValidatorRow(vote_address, NOT_AVAILABLE, NOT_AVAILABLE, status)

    commission = safe_int(entry.get("commission"))
    activated_stake = safe_int(entry.get("activatedStake"))
    return ValidatorRow(
        vote_address=vote_address,
        commission=f"{commission}%" if commission is not None else NOT_AVAILABLE,
        stake=f"{lamports_to_tokens(activated_stake):.2f} {token_symbol}" if activated_stake is not None else NOT_AVAILABLE,
        status=status,
    )


class ValidatorTable:
    """Rows for the vote addresses the user has added, in insertion order."""

    def __init__(self, client: StakeRPCClient, token_symbol: str = "XNT") -> None:
        self._client = client
        self._token_symbol = token_symbol
        self.rows: List[ValidatorRow] = []

    @property
    def vote_addresses(self) -> List[str]:
        return [row.vote_address for row in self.rows]

    async def add(self, vote_address: str) -> Optional[ValidatorRow]:
        vote_address = vote_address.strip()
        if not vote_address or vote_address in self.vote_addresses:
            return None
        try:
            vote_accounts = await self._client.get_vote_accounts()
        except NetworkError as exc:
            logger.warning("Error fetching validator data for %s: %s", vote_address, exc)
            raise
        row = build_validator_row(vote_address, vote_accounts, self._token_symbol)
        self.rows.append(row)
        logger.info("Added validator %s status=%s", vote_address, row.status)
        return row
