"""Signing and submission state machine for one authority change attempt.

An attempt moves through

    IDLE -> VALIDATING -> BUILDING -> AWAITING_SIGNATURE -> SUBMITTING -> CONFIRMING -> DONE

and every failure ends in DONE with a human-readable reason. Once a
transaction has been submitted its fate belongs to the network, so a
confirmation timeout or a network error from submission onward is reported
as indeterminate rather than failed.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Set

from solders.transaction import Transaction

from .builder import STAKE_AUTHORIZATION_NAMES, build
from .errors import (
    ConfirmationTimeout,
    NetworkError,
    SignerDeclined,
    StakeAuthorityError,
    SubmissionRejected,
    ValidationRejected,
)
from .models import AuthorityChangeRequest, OutcomeStatus, TransactionOutcome
from .rpc import ConfirmationStatus, StakeRPCClient
from .signer import TransactionSigner
from .snapshot import StakeAccountInspector
from .validation import validate


logger = logging.getLogger(__name__)

ALREADY_IN_FLIGHT = "An authority change is already in progress for this stake account."


class AttemptState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    BUILDING = "building"
    AWAITING_SIGNATURE = "awaiting_signature"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    DONE = "done"


POST_SUBMIT_STATES = (AttemptState.SUBMITTING, AttemptState.CONFIRMING)


class AuthorityChangeOrchestrator:
    def __init__(
        self,
        client: StakeRPCClient,
        inspector: StakeAccountInspector,
        config: Dict[str, Any],
    ) -> None:
        self._client = client
        self._inspector = inspector
        self._commitment = config["commitment"]
        self._blockhash_commitment = config["blockhash_commitment"]
        self._confirmation_timeout = config["confirmation_timeout_seconds"]
        self._poll_interval = config["confirmation_poll_interval_seconds"]
        self._submission_max_retries = config["submission_max_retries"]
        self._skip_preflight = config["skip_preflight"]
        self._in_flight: Set[str] = set()
        self.state = AttemptState.IDLE
        self.transitions: List[AttemptState] = []

    def is_in_flight(self, address: str) -> bool:
        return address in self._in_flight

    def _enter(self, state: AttemptState) -> None:
        logger.info("Authority change state %s -> %s", self.state.value, state.value)
        self.state = state
        self.transitions.append(state)

    async def change_authority(
        self,
        request: AuthorityChangeRequest,
        signer: TransactionSigner,
    ) -> TransactionOutcome:
        if request.target_account in self._in_flight:
            logger.warning("Rejected concurrent authority change for %s", request.target_account)
            return TransactionOutcome(
                status=OutcomeStatus.FAILED,
                reason=ALREADY_IN_FLIGHT,
                error_kind=ValidationRejected.__name__,
            )

        self._in_flight.add(request.target_account)
        self.transitions = []
        self.state = AttemptState.IDLE
        outcome = TransactionOutcome()
        try:
            await self._run(request, signer, outcome)
        except ValidationRejected as exc:
            self._fail(outcome, str(exc), exc)
        except SignerDeclined as exc:
            self._fail(outcome, f"Signing declined: {exc}", exc)
        except SubmissionRejected as exc:
            for line in exc.logs:
                logger.warning("Program log: %s", line)
            self._fail(outcome, f"Error sending transaction: {exc}", exc)
        except ConfirmationTimeout as exc:
            outcome.indeterminate = True
            self._fail(
                outcome,
                f"Confirmation timed out for transaction {exc.transaction_id}; it may still land. "
                "Re-inspect the stake account before retrying.",
                exc,
            )
        except NetworkError as exc:
            if outcome.transaction_id is not None or self.state in POST_SUBMIT_STATES:
                outcome.indeterminate = True
                transaction = f"transaction {outcome.transaction_id}" if outcome.transaction_id else "the transaction"
                self._fail(
                    outcome,
                    f"Network error during {self.state.value} ({exc}); {transaction} may still land. "
                    "Re-inspect the stake account before retrying.",
                    exc,
                )
            else:
                self._fail(outcome, f"Network error during {self.state.value}: {exc}", exc)
        finally:
            self._in_flight.discard(request.target_account)
            self._enter(AttemptState.DONE)
        return outcome

    def _fail(self, outcome: TransactionOutcome, reason: str, exc: StakeAuthorityError) -> None:
        logger.warning("Authority change failed in state %s: %s", self.state.value, reason)
        outcome.status = OutcomeStatus.FAILED
        outcome.reason = reason
        outcome.error_kind = type(exc).__name__

    async def _run(
        self,
        request: AuthorityChangeRequest,
        signer: TransactionSigner,
        outcome: TransactionOutcome,
    ) -> None:
        acting_identity = signer.public_key

        self._enter(AttemptState.VALIDATING)
        result = validate(self._inspector.snapshot, request, acting_identity)
        if not result:
            raise ValidationRejected(result.reason)

        self._enter(AttemptState.BUILDING)
        blockhash = await self._client.latest_blockhash(self._blockhash_commitment)
        unsigned = build(request, acting_identity, blockhash)
        logger.info(
            "Built %s authorization for %s -> %s (blockhash %s)",
            STAKE_AUTHORIZATION_NAMES[request.kind],
            request.target_account,
            request.proposed_authority,
            blockhash,
        )

        self._enter(AttemptState.AWAITING_SIGNATURE)
        signed = await self._request_signature(signer, unsigned)

        self._enter(AttemptState.SUBMITTING)
        transaction_id = await self._client.submit_transaction(
            bytes(signed),
            skip_preflight=self._skip_preflight,
            preflight_commitment=self._commitment,
            max_retries=self._submission_max_retries,
        )
        outcome.transaction_id = transaction_id
        logger.info("Submitted transaction %s", transaction_id)

        self._enter(AttemptState.CONFIRMING)
        status = await self._client.confirm_transaction(
            transaction_id,
            commitment=self._commitment,
            timeout=self._confirmation_timeout,
            poll_interval=self._poll_interval,
        )
        if status is ConfirmationStatus.TIMED_OUT:
            raise ConfirmationTimeout(transaction_id, self._confirmation_timeout)

        await self._log_transaction(transaction_id)
        outcome.status = OutcomeStatus.CONFIRMED
        outcome.reason = f"Transaction confirmed: {transaction_id}"
        try:
            await self._inspector.refresh(request.target_account)
        except NetworkError as exc:
            outcome.reason += f" (stake account refresh failed: {exc})"

    async def _request_signature(self, signer: TransactionSigner, unsigned: Transaction) -> Transaction:
        try:
            signed = await signer.sign_transaction(unsigned)
        except SignerDeclined:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            raise SignerDeclined(f"Signer unavailable: {exc}") from exc
        if signed is None:
            raise SignerDeclined("Signer returned no transaction.")
        if signed.message != unsigned.message:
            raise SignerDeclined("Signer returned a different transaction than requested.")
        return signed

    async def _log_transaction(self, transaction_id: str) -> None:
        try:
            details = await self._client.get_transaction(transaction_id, self._commitment)
        except NetworkError as exc:
            logger.warning("Could not fetch logs for %s: %s", transaction_id, exc)
            return
        meta = (details or {}).get("meta") or {}
        logger.info("Transaction logs: %s", meta.get("logMessages"))
