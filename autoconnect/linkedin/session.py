"""
LinkedIn session persistence.

After the user logs in manually on first run, the whole Playwright storage
state (cookies plus local storage) is written to a JSON file. Later runs
pass that file to ``new_context`` so the browser starts already logged in.
The critical cookie is 'li_at', which typically lasts 1-3 months.
"""
import json
import logging
from pathlib import Path

from playwright.sync_api import BrowserContext

logger = logging.getLogger("autoconnect")


class SessionStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        """Check if a session file exists and holds a readable storage state."""
        if not self.path.exists() or self.path.stat().st_size == 0:
            return False
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return False
        return isinstance(data, dict) and "cookies" in data

    def has_auth_cookie(self) -> bool:
        if not self.exists():
            return False
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return any(c.get("name") == "li_at" for c in data.get("cookies", []))

    def context_options(self) -> dict:
        """Keyword arguments for ``browser.new_context`` that restore the session."""
        if self.exists():
            logger.info(f"Restoring LinkedIn session from {self.path}")
            return {"storage_state": str(self.path)}
        logger.debug("No saved session found.")
        return {}

    def save(self, context: BrowserContext) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        context.storage_state(path=str(self.path))
        logger.info(f"Session saved to {self.path}")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("Saved session removed.")
