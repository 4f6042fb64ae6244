"""Admin login state: token persistence and forced logout on rejected tokens."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from backend_api import AuthenticationError, BackendClient
from storage import LocalStore

LOGGER = logging.getLogger(__name__)


class AdminSession:
    def __init__(self, client: BackendClient, store: LocalStore) -> None:
        self.client = client
        self.store = store
        self.user: Optional[Dict[str, Any]] = None
        self._logout_handlers: List[Callable[[], None]] = []

        client.token = store.auth_token
        client.on_token = self._persist_token

    @property
    def is_authenticated(self) -> bool:
        return bool(self.client.token)

    def on_logout(self, handler: Callable[[], None]) -> None:
        self._logout_handlers.append(handler)

    def login(self, phone_number: str, password: str) -> Dict[str, Any]:
        result = self.client.login(phone_number, password)
        self.user = self.call(self.client.me)
        LOGGER.info("Admin %s logged in", self.user.get("name") or phone_number)
        return result

    def logout(self) -> None:
        LOGGER.info("Logging out admin session")
        self.client.token = None
        self.store.auth_token = None
        self.user = None
        for handler in list(self._logout_handlers):
            handler()

    def call(self, method: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run an authenticated client call, logging out if the token is rejected."""
        try:
            return method(*args, **kwargs)
        except AuthenticationError:
            LOGGER.warning("Backend rejected the admin token; forcing logout")
            self.logout()
            raise

    def _persist_token(self, token: str) -> None:
        self.store.auth_token = token
