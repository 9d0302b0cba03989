import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_MODEL = "gemini-2.5-flash-image"

# Serverless request body ceiling ("4.5mb")
MAX_REQUEST_BYTES = 4_500_000


@dataclass(frozen=True)
class Config:
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    target_age: int = 50
    model_timeout_ms: int = 60_000
    max_content_length: int = MAX_REQUEST_BYTES

    def __repr__(self):
        # Keep the key out of logs and tracebacks.
        masked = "***" if self.api_key else None
        return (
            f"Config(api_key={masked!r}, model={self.model!r}, "
            f"target_age={self.target_age}, model_timeout_ms={self.model_timeout_ms}, "
            f"max_content_length={self.max_content_length})"
        )

    @classmethod
    def from_env(cls, environ=None):
        """Build the startup configuration from the process environment and .env."""
        if environ is None:
            load_dotenv()
            environ = os.environ
        return cls(
            api_key=environ.get("GEMINI_API_KEY") or environ.get("API_KEY") or None,
            model=environ.get("FUTURE_SELF_MODEL", DEFAULT_MODEL),
            target_age=int(environ.get("FUTURE_SELF_TARGET_AGE", 50)),
            model_timeout_ms=int(environ.get("FUTURE_SELF_MODEL_TIMEOUT_MS", 60_000)),
        )
