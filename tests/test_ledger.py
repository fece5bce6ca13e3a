"""
Ledger registrar tests
"""

import asyncio
import pytest
from unittest.mock import AsyncMock

from safar_suraksha.core.errors import TransactionBroadcastError
from safar_suraksha.core.itinerary import build_itinerary_proof
from safar_suraksha.core.ledger import LedgerRegistrar
from safar_suraksha.models.registration import RegistrationMode


@pytest.fixture
def proof():
    return build_itinerary_proof("T1", "Alice", "2024-01-01", "2024-01-05")


class TestRegistrarOnChain:

    @pytest.mark.asyncio
    async def test_successful_registration(self, proof, ledger_client):
        registrar = LedgerRegistrar(ledger_client, fee_multiplier=2.0)

        record = await registrar.register(proof)

        assert record.mode == RegistrationMode.ONCHAIN
        assert record.transaction_ref == "0xfeedbeef"
        assert record.proof_value == proof.proof_value
        ledger_client.estimate_fee.assert_awaited_once_with(proof, ledger_client.account)
        ledger_client.get_sequence_number.assert_awaited_once_with(ledger_client.account)
        ledger_client.submit.assert_awaited_once_with(
            proof, ledger_client.account, 21000, 2000, 5
        )

    @pytest.mark.asyncio
    async def test_fee_multiplier_applied(self, proof, ledger_factory):
        client = ledger_factory(fee_rate=1000)
        registrar = LedgerRegistrar(client, fee_multiplier=2.5)

        await registrar.register(proof)

        assert client.submit.await_args.args[3] == 2500

    def test_multiplier_below_one_rejected(self, ledger_client):
        with pytest.raises(ValueError):
            LedgerRegistrar(ledger_client, fee_multiplier=0.5)

    @pytest.mark.asyncio
    async def test_sequencing_can_be_disabled(self, proof, ledger_client):
        registrar = LedgerRegistrar(ledger_client, use_sequencing=False)

        record = await registrar.register(proof)

        assert record.mode == RegistrationMode.ONCHAIN
        ledger_client.get_sequence_number.assert_not_awaited()
        assert ledger_client.submit.await_args.args[4] is None


class TestRegistrarFallback:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing_call", [
        "estimate_fee", "get_fee_rate", "get_sequence_number", "submit"
    ])
    async def test_any_step_failure_falls_back(self, proof, ledger_client, failing_call):
        getattr(ledger_client, failing_call).side_effect = ConnectionError("node down")
        registrar = LedgerRegistrar(ledger_client)

        record = await registrar.register(proof)

        assert record.mode == RegistrationMode.FALLBACK
        assert record.transaction_ref is None
        assert record.proof_value == proof.proof_value

    @pytest.mark.asyncio
    async def test_no_client_falls_back(self, proof):
        registrar = LedgerRegistrar(None)

        record = await registrar.register(proof)

        assert registrar.enabled is False
        assert record.mode == RegistrationMode.FALLBACK
        assert record.proof_value == proof.proof_value

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, proof, ledger_client):
        async def hang(*args):
            await asyncio.sleep(10)

        ledger_client.submit.side_effect = hang
        registrar = LedgerRegistrar(ledger_client, timeout=0.05)

        record = await registrar.register(proof)

        assert record.mode == RegistrationMode.FALLBACK
        assert record.transaction_ref is None

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, proof, ledger_client, caplog):
        ledger_client.submit.side_effect = RuntimeError("rejected")
        registrar = LedgerRegistrar(ledger_client)

        await registrar.register(proof)

        assert "SUBMITTING: rejected" in caplog.text
        assert "FAILED_FALLBACK" in caplog.text


class TestRegistrarRetries:

    @pytest.mark.asyncio
    async def test_single_attempt_by_default(self, proof, ledger_client):
        ledger_client.submit.side_effect = RuntimeError("rejected")
        registrar = LedgerRegistrar(ledger_client)

        await registrar.register(proof)

        assert ledger_client.submit.await_count == 1

    @pytest.mark.asyncio
    async def test_bounded_retry(self, proof, ledger_client):
        ledger_client.submit.side_effect = [RuntimeError("underpriced"), "0xdef"]
        registrar = LedgerRegistrar(ledger_client, submit_attempts=2)

        record = await registrar.register(proof)

        assert record.mode == RegistrationMode.ONCHAIN
        assert record.transaction_ref == "0xdef"
        assert ledger_client.submit.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, proof, ledger_client):
        ledger_client.submit.side_effect = RuntimeError("rejected")
        registrar = LedgerRegistrar(ledger_client, submit_attempts=3)

        record = await registrar.register(proof)

        assert record.mode == RegistrationMode.FALLBACK
        assert ledger_client.submit.await_count == 3

    @pytest.mark.asyncio
    async def test_retry_after_spent_nonce_uses_fresh_nonce(self, proof, ledger_client):
        chain = {"nonce": 5, "sent": []}

        async def pending_count(account):
            return chain["nonce"]

        async def submit(payload, account, fee_units, fee_rate, nonce):
            if nonce < chain["nonce"]:
                raise ValueError(f"nonce too low: {nonce} < {chain['nonce']}")
            chain["sent"].append(nonce)
            chain["nonce"] = nonce + 1
            if len(chain["sent"]) == 1:
                raise TimeoutError("receipt wait timed out")
            return f"0x{nonce:02x}"

        ledger_client.get_sequence_number = AsyncMock(side_effect=pending_count)
        ledger_client.submit = AsyncMock(side_effect=submit)
        registrar = LedgerRegistrar(ledger_client, submit_attempts=3)

        record = await registrar.register(proof)

        assert record.mode == RegistrationMode.ONCHAIN
        assert record.transaction_ref == "0x06"
        assert chain["sent"] == [5, 6]
        assert ledger_client.submit.await_count == 2

    @pytest.mark.asyncio
    async def test_pending_broadcast_is_not_resent(self, proof, ledger_client):
        ledger_client.submit.side_effect = TransactionBroadcastError(
            "0xabc", "receipt wait timed out", pending=True
        )
        registrar = LedgerRegistrar(ledger_client, submit_attempts=3)

        record = await registrar.register(proof)
        await registrar.register(proof)

        assert record.mode == RegistrationMode.ONCHAIN
        assert record.transaction_ref == "0xabc"
        # One submission per registration; the spent nonce is not reused
        assert [c.args[4] for c in ledger_client.submit.await_args_list] == [5, 6]

    @pytest.mark.asyncio
    async def test_reverted_broadcast_is_not_retried(self, proof, ledger_client):
        ledger_client.submit.side_effect = TransactionBroadcastError("0xabc", "reverted")
        registrar = LedgerRegistrar(ledger_client, submit_attempts=3)

        record = await registrar.register(proof)

        assert record.mode == RegistrationMode.FALLBACK
        assert record.transaction_ref is None
        assert ledger_client.submit.await_count == 1


class TestNonceSequencing:

    @pytest.mark.asyncio
    async def test_concurrent_registrations_use_distinct_nonces(self, ledger_client):
        async def slow_submit(payload, account, fee_units, fee_rate, nonce):
            await asyncio.sleep(0.01)
            return f"0x{nonce:02x}"

        # The node keeps reporting the same pending count
        ledger_client.get_sequence_number = AsyncMock(return_value=5)
        ledger_client.submit = AsyncMock(side_effect=slow_submit)
        registrar = LedgerRegistrar(ledger_client)

        proofs = [build_itinerary_proof(f"T{i}", "Alice") for i in range(3)]
        records = await asyncio.gather(*(registrar.register(p) for p in proofs))

        nonces = sorted(call.args[4] for call in ledger_client.submit.await_args_list)
        assert nonces == [5, 6, 7]
        assert all(r.mode == RegistrationMode.ONCHAIN for r in records)

    @pytest.mark.asyncio
    async def test_ledger_nonce_ahead_of_cache_wins(self, proof, ledger_client):
        ledger_client.get_sequence_number = AsyncMock(side_effect=[5, 9])
        registrar = LedgerRegistrar(ledger_client)

        await registrar.register(proof)
        await registrar.register(proof)

        assert [c.args[4] for c in ledger_client.submit.await_args_list] == [5, 9]

    @pytest.mark.asyncio
    async def test_failure_resets_cached_nonce(self, proof, ledger_client):
        ledger_client.get_sequence_number = AsyncMock(return_value=5)
        ledger_client.submit = AsyncMock(side_effect=["0x1", RuntimeError("dropped"), "0x2"])
        registrar = LedgerRegistrar(ledger_client)

        await registrar.register(proof)
        await registrar.register(proof)
        await registrar.register(proof)

        # 5 succeeds, 6 fails, then the cache is dropped and the ledger says 5 again
        assert [c.args[4] for c in ledger_client.submit.await_args_list] == [5, 6, 5]
