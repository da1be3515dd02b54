"""JSON-RPC adapter for the stake authority workflow."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from solders.hash import Hash

from .config import safe_int
from .errors import NetworkError, SubmissionRejected


RATE_LIMIT_STATUS_CODES = {429}
RETRYABLE_STATUS_CODES = {429, 503}
RETRY_BACKOFF_SECONDS = 1.0
MAX_RETRY_BACKOFF_SECONDS = 12.0
RETRY_BACKOFF_JITTER = 0.25
COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


def summarize_payload(payload: Any, limit: int = 800) -> str:
    try:
        serialized = json.dumps(payload, default=str)
    except TypeError:
        serialized = str(payload)
    if len(serialized) > limit:
        return serialized[: limit - 3] + "..."
    return serialized


def _optional_pubkey(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


@dataclass(frozen=True)
class AccountRecord:
    address: str
    lamports: int
    stake_authority: Optional[str]
    withdraw_authority: Optional[str]


class ConfirmationStatus(Enum):
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"


def parse_account_record(address: str, value: Dict[str, Any]) -> AccountRecord:
    """Build an AccountRecord from a ``getAccountInfo`` value in jsonParsed encoding."""
    if not isinstance(value, dict):
        raise NetworkError(f"Malformed account info for {address}: {summarize_payload(value, 200)}")
    lamports = safe_int(value.get("lamports"))
    if lamports is None or lamports < 0:
        raise NetworkError(f"Malformed lamports for {address}: {value.get('lamports')!r}")

    data = value.get("data")
    parsed = data.get("parsed") if isinstance(data, dict) else None
    info = parsed.get("info") if isinstance(parsed, dict) else None
    meta = info.get("meta") if isinstance(info, dict) else None
    authorized = meta.get("authorized") if isinstance(meta, dict) else None
    if not isinstance(authorized, dict):
        authorized = {}

    return AccountRecord(
        address=address,
        lamports=lamports,
        stake_authority=_optional_pubkey(authorized.get("staker")),
        withdraw_authority=_optional_pubkey(authorized.get("withdrawer")),
    )


class StakeRPCClient:
    def __init__(
        self,
        endpoint: str,
        timeout: float = 35.0,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._request_id = 0
        self.logger = logging.getLogger(self.__class__.__name__)

    async def __aenter__(self) -> "StakeRPCClient":
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(self, method: str, params: Optional[List[Any]] = None, retry: bool = True) -> Any:
        """Send one JSON-RPC call and return its ``result``.

        Transport failures and JSON-RPC error objects raise NetworkError.
        HTTP 429/503 are retried with backoff when ``retry`` is set.
        """
        if self._client is None:
            raise RuntimeError("RPC client not initialized; use async context manager")

        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params or [],
        }
        data = await self._post(method, payload, retry)
        if not isinstance(data, dict):
            raise NetworkError(f"Malformed response to {method}: {summarize_payload(data, 200)}")
        if data.get("error") is not None:
            error = data["error"] if isinstance(data["error"], dict) else {"message": str(data["error"])}
            message = error.get("message", "Unknown RPC error")
            self.logger.warning("RPC error on %s: %s", method, message)
            raise NetworkError(f"RPC error on method {method}: {message}")
        if "result" not in data:
            raise NetworkError(f"Response to {method} has no result")
        return data["result"]

    async def _post(self, method: str, payload: Dict[str, Any], retry: bool) -> Any:
        payload_summary = summarize_payload(payload)
        attempts = self._max_retries if retry else 1
        attempt = 0
        while True:
            attempt += 1
            try:
                self.logger.info(
                    "RPC Request -> method=%s attempt=%d endpoint=%s payload=%s",
                    method,
                    attempt,
                    self.endpoint,
                    payload_summary,
                )
                response = await self._client.post(self.endpoint, json=payload)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code if exc.response is not None else None
                if status_code not in RETRYABLE_STATUS_CODES or attempt >= attempts:
                    raise NetworkError(f"HTTP error on method {method}: {exc}") from exc
                delay = self._compute_retry_delay(attempt, status_code)
                self.logger.info(
                    "Status %s on %s attempt=%d; backing off %.2fs", status_code, method, attempt, delay
                )
                await asyncio.sleep(delay)
                continue
            except httpx.RequestError as exc:
                self.logger.warning("Request error on %s attempt %d via %s: %s", method, attempt, self.endpoint, exc)
                raise NetworkError(f"Request error on method {method}: {exc}") from exc
            except ValueError as exc:
                raise NetworkError(f"Invalid JSON in response to {method}: {exc}") from exc

            self.logger.info(
                "RPC Response <- method=%s attempt=%d status=%s body=%s",
                method,
                attempt,
                response.status_code,
                summarize_payload(data, 400),
            )
            return data

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _compute_retry_delay(self, attempt: int, status_code: Optional[int]) -> float:
        base = RETRY_BACKOFF_SECONDS
        if status_code in RATE_LIMIT_STATUS_CODES:
            backoff = base * (2 ** (attempt - 1))
        else:
            backoff = base * attempt
        delay = min(backoff, MAX_RETRY_BACKOFF_SECONDS)
        jitter = random.uniform(0.0, RETRY_BACKOFF_JITTER)
        return delay + jitter

    async def lookup_account(self, address: str, commitment: str = "confirmed") -> Optional[AccountRecord]:
        result = await self.request(
            "getAccountInfo",
            [address, {"encoding": "jsonParsed", "commitment": commitment}],
        )
        if not isinstance(result, dict) or "value" not in result:
            raise NetworkError(f"Malformed getAccountInfo result for {address}")
        value = result["value"]
        if value is None:
            return None
        return parse_account_record(address, value)

    async def get_vote_accounts(self) -> Dict[str, List[Dict[str, Any]]]:
        result = await self.request("getVoteAccounts")
        if not isinstance(result, dict):
            raise NetworkError("Malformed getVoteAccounts result")
        return {
            "current": list(result.get("current") or []),
            "delinquent": list(result.get("delinquent") or []),
        }

    async def latest_blockhash(self, commitment: str = "finalized") -> str:
        result = await self.request("getLatestBlockhash", [{"commitment": commitment}])
        value = result.get("value") if isinstance(result, dict) else None
        blockhash = value.get("blockhash") if isinstance(value, dict) else None
        if not isinstance(blockhash, str) or not blockhash:
            raise NetworkError("Malformed getLatestBlockhash result")
        try:
            Hash.from_string(blockhash)
        except ValueError as exc:
            raise NetworkError("Malformed getLatestBlockhash result") from exc
        return blockhash

    async def submit_transaction(
        self,
        signed_bytes: bytes,
        skip_preflight: bool = False,
        preflight_commitment: str = "confirmed",
        max_retries: int = 3,
    ) -> str:
        """Send a signed transaction and return its signature.

        A JSON-RPC error, including a failed preflight simulation, raises
        SubmissionRejected carrying the simulation logs when present.
        """
        if self._client is None:
            raise RuntimeError("RPC client not initialized; use async context manager")
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": "sendTransaction",
            "params": [
                base64.b64encode(signed_bytes).decode("ascii"),
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": preflight_commitment,
                    "maxRetries": max_retries,
                },
            ],
        }
        data = await self._post("sendTransaction", payload, retry=False)
        if not isinstance(data, dict):
            raise NetworkError("Malformed sendTransaction response")
        error = data.get("error")
        if error is not None:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            message = error.get("message", "Unknown RPC error")
            details = error.get("data") if isinstance(error.get("data"), dict) else {}
            logs = [str(line) for line in details.get("logs") or []]
            raise SubmissionRejected(f"Transaction rejected: {message}", logs=logs)
        signature = data.get("result")
        if not isinstance(signature, str) or not signature:
            raise NetworkError("sendTransaction returned no signature")
        return signature

    async def confirm_transaction(
        self,
        signature: str,
        commitment: str = "confirmed",
        timeout: float = 60.0,
        poll_interval: float = 1.0,
    ) -> ConfirmationStatus:
        target_rank = COMMITMENT_RANK[commitment]
        deadline = time.monotonic() + timeout
        while True:
            result = await self.request(
                "getSignatureStatuses",
                [[signature], {"searchTransactionHistory": False}],
            )
            values = result.get("value") if isinstance(result, dict) else None
            if not isinstance(values, list):
                raise NetworkError("Malformed getSignatureStatuses result")
            status = values[0] if values else None
            if isinstance(status, dict):
                if status.get("err") is not None:
                    raise SubmissionRejected(f"Transaction {signature} failed on-chain: {status['err']}")
                reached = COMMITMENT_RANK.get(str(status.get("confirmationStatus")), -1)
                if reached >= target_rank:
                    self.logger.info("Transaction %s reached %s", signature, status.get("confirmationStatus"))
                    return ConfirmationStatus.CONFIRMED

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.logger.warning("Confirmation of %s timed out after %.1fs", signature, timeout)
                return ConfirmationStatus.TIMED_OUT
            await asyncio.sleep(min(poll_interval, remaining))

    async def get_transaction(self, signature: str, commitment: str = "confirmed") -> Optional[Dict[str, Any]]:
        result = await self.request(
            "getTransaction",
            [signature, {"commitment": commitment, "encoding": "json", "maxSupportedTransactionVersion": 0}],
        )
        return result if isinstance(result, dict) else None
