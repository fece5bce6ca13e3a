import asyncio
import logging
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol

from safar_suraksha.core.errors import LedgerUnavailableError, TransactionBroadcastError
from safar_suraksha.models.registration import ItineraryProof, RegistrationRecord

logger = logging.getLogger(__name__)

class RegistrationPayload(Protocol):
    subject_id: str
    display_name: str
    proof_value: str

class LedgerClient(Protocol):
    """Transaction-submission service the registrar talks to"""

    account: str

    async def estimate_fee(self, payload: RegistrationPayload, from_account: str) -> int: ...

    async def get_fee_rate(self) -> int: ...

    async def get_sequence_number(self, account: str) -> int: ...

    async def submit(
        self,
        payload: RegistrationPayload,
        from_account: str,
        fee_units: int,
        fee_rate: int,
        nonce: Optional[int]
    ) -> str: ...

class RegistrationState(str, Enum):
    ESTIMATING = "ESTIMATING"
    QUOTING = "QUOTING"
    SEQUENCING = "SEQUENCING"
    SUBMITTING = "SUBMITTING"
    CONFIRMED = "CONFIRMED"
    FAILED_FALLBACK = "FAILED_FALLBACK"

class LedgerRegistrar:
    """
    Anchors itinerary proofs on the ledger.

    The proof is always returned: any failure or timeout while estimating,
    quoting, sequencing or submitting yields a FALLBACK record carrying the
    same proof value and no transaction reference.

    Submissions from the account are serialized under one lock so that two
    concurrent registrations never reuse a nonce. The next nonce is cached
    after each successful submission and re-read from the ledger after any
    failure, including before each retry. A transaction the ledger already
    accepted is never re-sent: if its receipt is still pending the known
    reference is returned, and if it reverted the registration falls back.
    """

    def __init__(
        self,
        client: Optional[LedgerClient],
        fee_multiplier: float = 2.0,
        timeout: Optional[float] = 30.0,
        submit_attempts: int = 1,
        use_sequencing: bool = True
    ):
        if fee_multiplier < 1:
            raise ValueError("fee_multiplier must be at least 1")
        if submit_attempts < 1:
            raise ValueError("submit_attempts must be at least 1")

        self.client = client
        self.fee_multiplier = Decimal(str(fee_multiplier))
        self.timeout = timeout
        self.submit_attempts = submit_attempts
        self.use_sequencing = use_sequencing

        self._account_lock = asyncio.Lock()
        self._next_nonce: Optional[int] = None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def apply_fee_multiplier(self, fee_rate: int) -> int:
        return int(Decimal(fee_rate) * self.fee_multiplier)

    async def register(self, proof: ItineraryProof) -> RegistrationRecord:
        if self.client is None:
            logger.info("Ledger not configured; issuing fallback record for %s", proof.subject_id)
            return RegistrationRecord.from_proof(proof)

        try:
            if self.timeout is None:
                transaction_ref = await self._submit(proof)
            else:
                transaction_ref = await asyncio.wait_for(self._submit(proof), self.timeout)
        except asyncio.TimeoutError:
            self._next_nonce = None
            logger.error(
                "Ledger registration for %s timed out after %ss; state=%s",
                proof.subject_id, self.timeout, RegistrationState.FAILED_FALLBACK.value
            )
            return RegistrationRecord.from_proof(proof)
        except LedgerUnavailableError as e:
            logger.error(
                "Ledger registration for %s failed (%s); state=%s",
                proof.subject_id, e, RegistrationState.FAILED_FALLBACK.value
            )
            return RegistrationRecord.from_proof(proof)

        logger.info(
            "Proof for %s anchored in transaction %s; state=%s",
            proof.subject_id, transaction_ref, RegistrationState.CONFIRMED.value
        )
        return RegistrationRecord.from_proof(proof, transaction_ref)

    async def _call(self, state: RegistrationState, func, *args):
        logger.debug("Ledger registration state=%s", state.value)
        try:
            return await func(*args)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise LedgerUnavailableError(state.value, str(e) or type(e).__name__) from e

    async def _submit(self, proof: ItineraryProof) -> str:
        client = self.client
        account = client.account

        fee_units = await self._call(
            RegistrationState.ESTIMATING, client.estimate_fee, proof, account
        )
        fee_rate = await self._call(RegistrationState.QUOTING, client.get_fee_rate)
        boosted_rate = self.apply_fee_multiplier(fee_rate)

        async with self._account_lock:
            try:
                nonce = await self._reserve_nonce(account)

                last_error: Optional[LedgerUnavailableError] = None
                for attempt in range(1, self.submit_attempts + 1):
                    if attempt > 1:
                        # A failed attempt may still have spent the nonce
                        self._next_nonce = None
                        nonce = await self._reserve_nonce(account)
                    try:
                        transaction_ref = await self._call(
                            RegistrationState.SUBMITTING,
                            client.submit, proof, account, fee_units, boosted_rate, nonce
                        )
                        break
                    except LedgerUnavailableError as e:
                        broadcast = e.__cause__
                        if isinstance(broadcast, TransactionBroadcastError):
                            if not broadcast.pending:
                                raise
                            logger.warning(
                                "Transaction %s for %s broadcast but not confirmed yet",
                                broadcast.transaction_ref, proof.subject_id
                            )
                            transaction_ref = broadcast.transaction_ref
                            break
                        last_error = e
                        logger.warning(
                            "Submission attempt %d/%d for %s failed: %s",
                            attempt, self.submit_attempts, proof.subject_id, e
                        )
                else:
                    raise last_error
            except BaseException:
                self._next_nonce = None
                raise

            if nonce is not None:
                self._next_nonce = nonce + 1

        return transaction_ref

    async def _reserve_nonce(self, account: str) -> Optional[int]:
        if not self.use_sequencing:
            return None

        chain_nonce = await self._call(
            RegistrationState.SEQUENCING, self.client.get_sequence_number, account
        )
        if self._next_nonce is not None and self._next_nonce > chain_nonce:
            return self._next_nonce
        return chain_nonce
