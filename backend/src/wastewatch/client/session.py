"""Client session: who is logged in and where their token lives.

The bearer token is persisted as ``{"token": ...}`` in a small JSON file so
the CLI can reuse it between invocations. Logging out clears the file and
disposes every board opened through the session.
"""

import json
import os
from pathlib import Path

from ..config import get_settings
from ..logging import get_logger
from .api import ApiClientError, ServerError, WasteApiClient
from .board import ReportBoard
from .forms import RegistrationForm

logger = get_logger(__name__)


class TokenStore:
    """JSON file holding the bearer token under a fixed key."""

    KEY = "token"

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or get_settings().client_token_path).expanduser()

    def load(self) -> str | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable token file {self.path}: {e}")
            return None
        token = data.get(self.KEY) if isinstance(data, dict) else None
        return token or None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({self.KEY: token}))
        os.chmod(self.path, 0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class ClientSession:
    """Authenticated state shared by the CLI and boards.

    Args:
        client: API client the session authenticates
        token_store: Where the token is persisted
    """

    def __init__(self, client: WasteApiClient, token_store: TokenStore | None = None):
        self.client = client
        self.token_store = token_store or TokenStore()
        self.user: dict | None = None
        self._boards: list[ReportBoard] = []

    @property
    def is_authenticated(self) -> bool:
        return self.client.token is not None and self.user is not None

    @property
    def role(self) -> str | None:
        return self.user.get("role") if self.user else None

    def _accept(self, result: dict) -> dict:
        self.client.token = result["token"]
        self.token_store.save(result["token"])
        self.user = result["user"]
        return self.user

    async def login(self, email: str, password: str) -> dict:
        """Log in and persist the token. Returns the user."""
        return self._accept(await self.client.login(email, password))

    async def register(self, form: RegistrationForm) -> dict:
        """Create an account from a validated form and log into it."""
        payload = form.to_request().model_dump(mode="json", by_alias=True, exclude_none=True)
        return self._accept(await self.client.register(payload))

    async def resume(self) -> dict | None:
        """Restore the session from the token file.

        A token the server rejects with 401 is discarded.
        """
        token = self.token_store.load()
        if token is None:
            return None
        self.client.token = token
        try:
            self.user = await self.client.me()
        except ServerError as e:
            if e.status_code != 401:
                raise
            logger.info("Stored token rejected, clearing it")
            self._forget()
            return None
        return self.user

    async def update_profile(self, name: str | None = None, phone: str | None = None) -> dict:
        self.user = await self.client.update_profile(name=name, phone=phone)
        return self.user

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self.client.change_password(current_password, new_password)

    def open_board(self, **kwargs) -> ReportBoard:
        board = ReportBoard(self.client, **kwargs)
        self._boards.append(board)
        return board

    def _forget(self) -> None:
        for board in self._boards:
            board.dispose()
        self._boards.clear()
        self.token_store.clear()
        self.client.token = None
        self.user = None

    async def logout(self) -> None:
        """Revoke the token server-side and forget it locally.

        Local state is cleared even if the server call fails.
        """
        try:
            if self.client.token:
                await self.client.logout()
        except ApiClientError as e:
            logger.warning(f"Server logout failed: {e}")
        finally:
            self._forget()
