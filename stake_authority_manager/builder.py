"""Construction of the unsigned stake ``Authorize`` transaction."""

from __future__ import annotations

import struct

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.sysvar import CLOCK
from solders.transaction import Transaction

from .models import AuthorityChangeRequest, AuthorityKind


STAKE_PROGRAM_ID = Pubkey.from_string("Stake11111111111111111111111111111111111111")
AUTHORIZE_INSTRUCTION_INDEX = 1
STAKE_AUTHORIZATION_TYPES = {
    AuthorityKind.STAKER: 0,
    AuthorityKind.WITHDRAWER: 1,
}
STAKE_AUTHORIZATION_NAMES = {
    AuthorityKind.STAKER: "Staker",
    AuthorityKind.WITHDRAWER: "Withdrawer",
}


def encode_authorize_data(new_authority: Pubkey, kind: AuthorityKind) -> bytes:
    """Bincode layout: u32 instruction index, 32-byte pubkey, u32 authorization type."""
    return (
        struct.pack("<I", AUTHORIZE_INSTRUCTION_INDEX)
        + bytes(new_authority)
        + struct.pack("<I", STAKE_AUTHORIZATION_TYPES[kind])
    )


def authorize_instruction(
    stake_account: Pubkey,
    authority: Pubkey,
    new_authority: Pubkey,
    kind: AuthorityKind,
) -> Instruction:
    accounts = [
        AccountMeta(pubkey=stake_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=CLOCK, is_signer=False, is_writable=False),
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
    ]
    return Instruction(STAKE_PROGRAM_ID, encode_authorize_data(new_authority, kind), accounts)


def build(request: AuthorityChangeRequest, fee_payer: str, blockhash: str) -> Transaction:
    """Return an unsigned transaction holding one Authorize instruction."""
    if request.current_authority_signer is None:
        raise ValueError("request has no current authority signer")
    instruction = authorize_instruction(
        stake_account=Pubkey.from_string(request.target_account),
        authority=Pubkey.from_string(request.current_authority_signer),
        new_authority=Pubkey.from_string(request.proposed_authority),
        kind=request.kind,
    )
    message = Message.new_with_blockhash(
        [instruction],
        Pubkey.from_string(fee_payer),
        Hash.from_string(blockhash),
    )
    return Transaction.new_unsigned(message)
