import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Secrets:
    api_key: str = field(default="", repr=False)

    def has_api_key(self) -> bool:
        return bool(self.api_key)


def load_secrets(env_path: Path = Path(".env")) -> Secrets:
    """Load backend credentials from environment variables and .env file."""
    load_dotenv(env_path)

    return Secrets(
        api_key=os.environ.get("REST_API_KEY", ""),
    )
