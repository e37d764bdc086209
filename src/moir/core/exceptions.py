"""
Moir exception hierarchy.

All moir exceptions inherit from MoirError, making it easy for callers
to catch library-level errors while still distinguishing specific failure modes.
"""


class MoirError(Exception):
    """Base exception class for all moir errors."""


class ConfigurationError(MoirError):
    """Raised for configuration errors (missing keys, invalid values)."""


class APIError(MoirError):
    """Raised for backend communication errors."""


class AuthError(MoirError):
    """Raised for invalid credentials, duplicate registration, or a missing session."""


class FetchError(APIError):
    """Raised when a list/get/count call fails (network or permission)."""


class NotFoundError(FetchError):
    """Raised when a document looked up by id does not exist."""


class WriteError(APIError):
    """Raised when a create/update/delete call fails."""


class DecodeError(MoirError):
    """Raised when a stored document does not match its collection schema."""

    def __init__(self, collection: str, doc_id: str | None, detail: str):
        self.collection = collection
        self.doc_id = doc_id
        self.detail = detail
        super().__init__(f"Cannot decode {collection}/{doc_id or '?'}: {detail}")


class ValidationError(MoirError):
    """Raised when user input fails client-side validation."""


class SecretNotFoundError(MoirError):
    """Raised when a required secret cannot be found in any provider."""
