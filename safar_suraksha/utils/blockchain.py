import aiohttp
import logging
from typing import Any, Optional

from web3 import AsyncWeb3
from web3.exceptions import TimeExhausted
from web3.providers import AsyncHTTPProvider

from safar_suraksha.config import Settings
from safar_suraksha.core.errors import TransactionBroadcastError
from safar_suraksha.core.ledger import RegistrationPayload

logger = logging.getLogger(__name__)

TOURIST_REGISTRY_ABI: list[dict[str, Any]] = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "internalType": "string", "name": "touristId", "type": "string"},
            {"indexed": False, "internalType": "string", "name": "name", "type": "string"},
            {"indexed": False, "internalType": "string", "name": "tripHash", "type": "string"}
        ],
        "name": "TouristRegistered",
        "type": "event"
    },
    {
        "inputs": [
            {"internalType": "string", "name": "touristId", "type": "string"},
            {"internalType": "string", "name": "name", "type": "string"},
            {"internalType": "string", "name": "tripHash", "type": "string"}
        ],
        "name": "registerTourist",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]

class Web3LedgerClient:
    """
    Ledger client backed by an EVM JSON-RPC node.

    Transactions call registerTourist(touristId, name, tripHash) on the
    registry contract and are signed locally with the configured key.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        private_key: str,
        request_timeout: float = 10.0,
        receipt_timeout: float = 20.0,
        wait_for_receipt: bool = True
    ):
        self.w3 = AsyncWeb3(AsyncHTTPProvider(
            rpc_url, request_kwargs={"timeout": aiohttp.ClientTimeout(total=request_timeout)}
        ))
        self._signer = self.w3.eth.account.from_key(private_key)
        self.account: str = self._signer.address
        self.contract = self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address),
            abi=TOURIST_REGISTRY_ABI
        )
        self.request_timeout = request_timeout
        self.receipt_timeout = receipt_timeout
        self.wait_for_receipt = wait_for_receipt
        self._chain_id: Optional[int] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Web3LedgerClient":
        return cls(
            rpc_url=settings.LEDGER_RPC_URL,
            contract_address=settings.LEDGER_CONTRACT_ADDRESS,
            private_key=settings.LEDGER_PRIVATE_KEY,
            request_timeout=settings.LEDGER_REQUEST_TIMEOUT_SECONDS,
            receipt_timeout=settings.LEDGER_RECEIPT_TIMEOUT_SECONDS,
            wait_for_receipt=settings.LEDGER_WAIT_FOR_RECEIPT
        )

    def _register_call(self, payload: RegistrationPayload):
        return self.contract.functions.registerTourist(
            payload.subject_id, payload.display_name, payload.proof_value
        )

    async def estimate_fee(self, payload: RegistrationPayload, from_account: str) -> int:
        return await self._register_call(payload).estimate_gas({"from": from_account})

    async def get_fee_rate(self) -> int:
        return await self.w3.eth.gas_price

    async def get_sequence_number(self, account: str) -> int:
        return await self.w3.eth.get_transaction_count(account, "pending")

    async def submit(
        self,
        payload: RegistrationPayload,
        from_account: str,
        fee_units: int,
        fee_rate: int,
        nonce: Optional[int]
    ) -> str:
        if self._chain_id is None:
            self._chain_id = await self.w3.eth.chain_id
        if nonce is None:
            nonce = await self.get_sequence_number(from_account)

        transaction = await self._register_call(payload).build_transaction({
            "from": from_account,
            "gas": fee_units,
            "gasPrice": fee_rate,
            "nonce": nonce,
            "chainId": self._chain_id
        })
        signed = self._signer.sign_transaction(transaction)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        transaction_ref = tx_hash.to_0x_hex()
        logger.info("Submitted registry transaction %s (nonce %d)", transaction_ref, nonce)

        if self.wait_for_receipt:
            try:
                receipt = await self.w3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.receipt_timeout
                )
            except TimeExhausted as e:
                raise TransactionBroadcastError(transaction_ref, str(e), pending=True) from e
            if receipt["status"] != 1:
                raise TransactionBroadcastError(transaction_ref, "reverted")

        return transaction_ref
