"""Public schema exports."""

from .consent import (
    ConsentClient,
    ConsentDecision,
    ConsentPrompt,
    RevocationRequest,
)
from .tokens import ErrorResponse, TokenResponse

__all__ = [
    "ConsentClient",
    "ConsentDecision",
    "ConsentPrompt",
    "ErrorResponse",
    "RevocationRequest",
    "TokenResponse",
]
