import logging
import os
import secrets
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

API_KEY_ENV = "PAGINATOR_API_KEY"


class KeyManager:
    """
    Holds the single API key clients must present.

    The key comes from the PAGINATOR_API_KEY environment variable. When it
    is not set a random key is generated and written to ``key_file`` so the
    operator can paste it into the web interface.
    """

    def __init__(self, api_key: Optional[str] = None, key_file: Optional[Path] = None):
        self.key_file = Path(key_file) if key_file else None
        self.generated = False
        self._api_key = api_key or os.environ.get(API_KEY_ENV) or self._generate()

    def _generate(self) -> str:
        """Create a new random key and persist it next to the server."""
        key = secrets.token_hex(32)
        self.generated = True
        if self.key_file is not None:
            self.key_file.write_text(key, encoding="utf-8")
            logger.warning(f"Generated API key saved to {self.key_file}")
        else:
            logger.warning("Generated API key (set PAGINATOR_API_KEY to keep it stable)")
        return key

    @property
    def api_key(self) -> str:
        return self._api_key

    def validate_key(self, key: Optional[str]) -> bool:
        """Constant-time comparison against the configured key."""
        if not key:
            return False
        return secrets.compare_digest(key.encode(), self._api_key.encode())
