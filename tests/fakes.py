from __future__ import annotations

import base64
import json
import struct
from typing import Any, Callable, Dict, List, Optional, Set

import httpx
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction


STAKE_PROGRAM = "Stake11111111111111111111111111111111111111"


class FakeChain:
    """In-memory JSON-RPC node that applies submitted Authorize instructions."""

    def __init__(self) -> None:
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.vote_accounts: Dict[str, List[Dict[str, Any]]] = {"current": [], "delinquent": []}
        self.blockhash = str(Hash.new_unique())
        self.calls: List[str] = []
        self.requests: List[Dict[str, Any]] = []
        self.submitted: List[Transaction] = []
        self.statuses: Dict[str, Dict[str, Any]] = {}
        self.auto_confirm = True
        self.landed_error: Optional[Dict[str, Any]] = None
        self.submission_error: Optional[Dict[str, Any]] = None
        self.http_failures: Dict[str, int] = {}
        self.raw_results: Dict[str, Any] = {}
        self.broken_methods: Set[str] = set()
        self.transport_errors: Dict[str, Callable[[httpx.Request], Exception]] = {}

    def add_stake_account(
        self,
        address: str,
        lamports: int,
        staker: Optional[str],
        withdrawer: Optional[str],
    ) -> None:
        authorized: Dict[str, Any] = {}
        if staker is not None:
            authorized["staker"] = staker
        if withdrawer is not None:
            authorized["withdrawer"] = withdrawer
        self.accounts[address] = {
            "lamports": lamports,
            "owner": STAKE_PROGRAM,
            "executable": False,
            "rentEpoch": 0,
            "data": {
                "program": "stake",
                "space": 200,
                "parsed": {
                    "type": "initialized",
                    "info": {
                        "meta": {
                            "rentExemptReserve": "2282880",
                            "authorized": authorized,
                            "lockup": {"unixTimestamp": 0, "epoch": 0, "custodian": "11111111111111111111111111111111"},
                        }
                    },
                },
            },
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append(method)
        self.requests.append(body)

        if method in self.transport_errors:
            raise self.transport_errors[method](request)
        remaining = self.http_failures.get(method, 0)
        if remaining:
            self.http_failures[method] = remaining - 1
            return httpx.Response(503, json={"error": "unavailable"})
        if method in self.broken_methods:
            return httpx.Response(200, content=b"not json")
        if method in self.raw_results:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": self.raw_results[method]})

        handler = getattr(self, f"_{method}")
        reply = handler(body.get("params") or [])
        reply.setdefault("jsonrpc", "2.0")
        reply["id"] = body["id"]
        return httpx.Response(200, json=reply)

    def _getAccountInfo(self, params: List[Any]) -> Dict[str, Any]:
        value = self.accounts.get(params[0])
        return {"result": {"context": {"slot": 1}, "value": json.loads(json.dumps(value)) if value else None}}

    def _getVoteAccounts(self, params: List[Any]) -> Dict[str, Any]:
        return {"result": self.vote_accounts}

    def _getLatestBlockhash(self, params: List[Any]) -> Dict[str, Any]:
        return {"result": {"context": {"slot": 1}, "value": {"blockhash": self.blockhash, "lastValidBlockHeight": 150}}}

    def _sendTransaction(self, params: List[Any]) -> Dict[str, Any]:
        if self.submission_error is not None:
            return {"error": self.submission_error}
        transaction = Transaction.from_bytes(base64.b64decode(params[0]))
        self.submitted.append(transaction)
        signature = str(transaction.signatures[0])
        if self.landed_error is None:
            self._apply(transaction)
        if self.auto_confirm:
            self.statuses[signature] = {
                "slot": 2,
                "confirmations": None,
                "err": self.landed_error,
                "confirmationStatus": "confirmed",
            }
        return {"result": signature}

    def _getSignatureStatuses(self, params: List[Any]) -> Dict[str, Any]:
        return {"result": {"context": {"slot": 2}, "value": [self.statuses.get(sig) for sig in params[0]]}}

    def _getTransaction(self, params: List[Any]) -> Dict[str, Any]:
        return {"result": {"slot": 2, "meta": {"err": None, "logMessages": ["Program Stake111 success"]}}}

    def _apply(self, transaction: Transaction) -> None:
        message = transaction.message
        keys = message.account_keys
        for instruction in message.instructions:
            if str(keys[instruction.program_id_index]) != STAKE_PROGRAM:
                continue
            data = bytes(instruction.data)
            (index,) = struct.unpack_from("<I", data, 0)
            if index != 1:
                continue
            new_authority = str(Pubkey.from_bytes(data[4:36]))
            (kind,) = struct.unpack_from("<I", data, 36)
            stake_account = str(keys[instruction.accounts[0]])
            authorized = self.accounts[stake_account]["data"]["parsed"]["info"]["meta"]["authorized"]
            authorized["staker" if kind == 0 else "withdrawer"] = new_authority


class ApprovingSigner:
    def __init__(self, keypair: Keypair) -> None:
        self.keypair = keypair
        self.presented: List[Transaction] = []

    @property
    def public_key(self) -> Optional[str]:
        return str(self.keypair.pubkey())

    async def sign_transaction(self, transaction: Transaction) -> Transaction:
        self.presented.append(transaction)
        return Transaction([self.keypair], transaction.message, transaction.message.recent_blockhash)


def new_address() -> str:
    return str(Pubkey.new_unique())
