"""Console rendering of stake panels and validator tables."""

from __future__ import annotations

from typing import List, Optional

import pandas as pd

from .models import AuthorityKind, StakeAccountSnapshot, UNKNOWN_AUTHORITY_LABEL
from .validation import can_change
from .vote_accounts import ValidatorRow


VALIDATOR_COLUMNS = {
    "vote_address": "Vote Address",
    "commission": "Commission",
    "stake": "Stake",
    "status": "Status",
}


def format_balance(snapshot: StakeAccountSnapshot, token_symbol: str) -> str:
    return f"{snapshot.balance_tokens:.6f} {token_symbol}"


def render_stake_panel(snapshot: Optional[StakeAccountSnapshot], token_symbol: str) -> str:
    if snapshot is None:
        return ""
    panel = pd.Series(
        {
            "Stake Account": snapshot.address,
            "Balance": format_balance(snapshot, token_symbol),
            "Stake Authority": snapshot.stake_authority or UNKNOWN_AUTHORITY_LABEL,
            "Withdraw Authority": snapshot.withdraw_authority or UNKNOWN_AUTHORITY_LABEL,
        }
    )
    return panel.to_string()


def render_validator_table(rows: List[ValidatorRow]) -> str:
    frame = pd.DataFrame([row.to_dict() for row in rows], columns=list(VALIDATOR_COLUMNS))
    frame = frame.rename(columns=VALIDATOR_COLUMNS)
    return frame.to_string(index=False, justify="center")


def render_authority_controls(snapshot: Optional[StakeAccountSnapshot], acting_identity: Optional[str]) -> str:
    lines = []
    for kind in AuthorityKind:
        enabled = can_change(snapshot, kind, acting_identity)
        lines.append(f"Change {kind.label.capitalize()} Authority: {'enabled' if enabled else 'disabled'}")
    return "\n".join(lines)
