"""Signer boundary.

The workflow never holds keys itself. It hands an unsigned transaction to a
``TransactionSigner`` and receives a signed one back, or ``SignerDeclined``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Callable, Optional, Protocol

from solders.keypair import Keypair
from solders.transaction import Transaction

from .errors import ConfigurationError, SignerDeclined


logger = logging.getLogger(__name__)

ApprovalPrompt = Callable[[str], bool]


class TransactionSigner(Protocol):
    @property
    def public_key(self) -> Optional[str]:
        ...

    async def sign_transaction(self, transaction: Transaction) -> Transaction:
        ...


def load_keypair(path: Path) -> Keypair:
    """Read a keypair file in the CLI format (JSON array of 64 byte values)."""
    if not path.exists():
        raise ConfigurationError(f"Keypair file not found at {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return Keypair.from_bytes(bytes(raw))
    except (json.JSONDecodeError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid keypair file {path}: {exc}") from exc


def console_prompt(summary: str) -> bool:
    answer = input(f"{summary}\nApprove and sign? [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


class KeypairSigner:
    """Signs with a local keypair after an explicit approval step."""

    def __init__(self, keypair: Keypair, prompt: Optional[ApprovalPrompt] = None) -> None:
        self._keypair = keypair
        self._prompt = prompt

    @classmethod
    def from_file(cls, path: Path, prompt: Optional[ApprovalPrompt] = None) -> "KeypairSigner":
        return cls(load_keypair(path), prompt)

    @property
    def public_key(self) -> Optional[str]:
        return str(self._keypair.pubkey())

    async def sign_transaction(self, transaction: Transaction) -> Transaction:
        if self._prompt is not None:
            summary = f"Sign transaction with {len(transaction.message.instructions)} instruction(s) as {self.public_key}"
            approved = await asyncio.get_running_loop().run_in_executor(None, self._prompt, summary)
            if not approved:
                raise SignerDeclined("User declined to sign the transaction.")
        logger.info("Signing transaction as %s", self.public_key)
        try:
            return Transaction([self._keypair], transaction.message, transaction.message.recent_blockhash)
        except Exception as exc:  # pylint: disable=broad-except
            raise SignerDeclined(f"Signer could not sign the transaction: {exc}") from exc
