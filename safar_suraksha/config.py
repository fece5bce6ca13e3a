from pathlib import Path

from pydantic_settings import BaseSettings

DEFAULT_ZONES_FILE = Path(__file__).parent / "data" / "zones.json"

class Settings(BaseSettings):
    APP_NAME: str = "SafarSuraksha Backend"
    LOG_LEVEL: str = "INFO"

    # Restricted zones
    ZONES_FILE: Path = DEFAULT_ZONES_FILE

    # Safety score levels
    SAFE_SCORE: int = 90
    ALERT_SCORE: int = 50

    # Ledger (leave RPC URL empty to run in fallback-only mode)
    LEDGER_RPC_URL: str = ""
    LEDGER_CONTRACT_ADDRESS: str = ""
    LEDGER_PRIVATE_KEY: str = ""
    LEDGER_FEE_MULTIPLIER: float = 2.0
    # Whole registration; keep the per-call timeouts below it
    LEDGER_TIMEOUT_SECONDS: float = 30.0
    LEDGER_REQUEST_TIMEOUT_SECONDS: float = 10.0
    LEDGER_RECEIPT_TIMEOUT_SECONDS: float = 20.0
    LEDGER_SUBMIT_ATTEMPTS: int = 1
    LEDGER_WAIT_FOR_RECEIPT: bool = True
    LEDGER_EXPLORER_TX_URL: str = "https://mumbai.polygonscan.com/tx/{tx_hash}"

    # Real-time alerts
    ALERT_QUEUE_SIZE: int = 100
    ALERT_WEBHOOK_URL: str = ""
    ALERT_WEBHOOK_TIMEOUT_SECONDS: float = 10.0

    @property
    def ledger_configured(self) -> bool:
        return bool(
            self.LEDGER_RPC_URL
            and self.LEDGER_CONTRACT_ADDRESS
            and self.LEDGER_PRIVATE_KEY
        )

    class Config:
        env_file = ".env"

settings = Settings()
