import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_STORE_PATH = Path.home() / ".learnlens" / "storage.json"
DEFAULT_REFRESH_DELAY_MS = 1500


@dataclass(frozen=True)
class ClientConfig:
    """Settings for the dashboard client."""
    api_url: str = DEFAULT_API_URL
    store_path: Path = DEFAULT_STORE_PATH
    # Pause between the upload confirmation and the views refreshing
    refresh_delay_ms: int = DEFAULT_REFRESH_DELAY_MS
    # None keeps the transport default
    request_timeout: Optional[float] = None

    @property
    def refresh_delay(self) -> float:
        return self.refresh_delay_ms / 1000.0

    @classmethod
    def from_env(cls) -> "ClientConfig":
        timeout = os.getenv("LEARNLENS_REQUEST_TIMEOUT")
        return cls(
            api_url=os.getenv("LEARNLENS_API_URL", DEFAULT_API_URL).rstrip("/"),
            store_path=Path(os.getenv("LEARNLENS_STORE_PATH", str(DEFAULT_STORE_PATH))).expanduser(),
            refresh_delay_ms=int(os.getenv("LEARNLENS_REFRESH_DELAY_MS", str(DEFAULT_REFRESH_DELAY_MS))),
            request_timeout=float(timeout) if timeout else None,
        )
