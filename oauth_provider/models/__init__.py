"""Domain models and collaborator interfaces."""

from .owner import Owner, ResourceOwner
from .records import Authorization, Client
from .request import ProviderRequest, SimpleRequest
from .store import AuthorizationStore

__all__ = [
    "Authorization",
    "AuthorizationStore",
    "Client",
    "Owner",
    "ProviderRequest",
    "ResourceOwner",
    "SimpleRequest",
]
