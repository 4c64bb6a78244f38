"""Client provisioning and authentication."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from oauth_provider.models.records import Client
from oauth_provider.models.store import AuthorizationStore
from oauth_provider.services.credentials import SecretHasher, generate_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredClient:
    """Result of provisioning; the only place the plaintext secret ever appears."""

    client: Client
    client_secret: str


class ClientRegistry:
    """Look up, provision and authenticate client applications."""

    def __init__(
        self, store: AuthorizationStore, hasher: Optional[SecretHasher] = None
    ) -> None:
        self._store = store
        self._hasher = hasher or SecretHasher()

    def get(self, client_id: str) -> Optional[Client]:
        if not client_id:
            return None
        return self._store.get_client(client_id)

    def register(
        self,
        *,
        name: str,
        redirect_uri: str,
        grant_types: Iterable[str] = (),
    ) -> RegisteredClient:
        if not name:
            raise ValueError("Client name must be provided.")
        if not redirect_uri:
            raise ValueError("Client redirect URI must be provided.")
        secret = generate_token()
        client = Client(
            client_id=generate_token(),
            client_secret_hash=self._hasher.hash(secret),
            name=name,
            redirect_uri=redirect_uri,
            grant_types=frozenset(grant_types),
        )
        self._store.put_client(client)
        logger.info("Registered client %s (%s)", client.client_id, name)
        return RegisteredClient(client=client, client_secret=secret)

    def authenticate(self, client_id: str, client_secret: str) -> Optional[Client]:
        """Return the client when the secret matches, otherwise ``None``."""
        client = self.get(client_id)
        if client is None or not client_secret:
            return None
        if not self._hasher.verify(client_secret, client.client_secret_hash):
            return None
        return client


__all__ = ["ClientRegistry", "RegisteredClient"]
