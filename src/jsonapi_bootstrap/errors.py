"""Bootstrap error types."""

from __future__ import annotations


class BootstrapError(RuntimeError):
    """Base bootstrap error."""


class RPCTransportError(BootstrapError):
    """An RPC call could not be completed (connection failure or deadline)."""

    def __init__(self, call: str, message: str) -> None:
        super().__init__(f"{call} call failed: {message}")
        self.call = call


class RPCResponseError(BootstrapError):
    """An RPC response carried a non-zero application error code."""

    def __init__(self, call: str, code: int, description: str) -> None:
        super().__init__(f"{call} RPC error: code={code} desc={description}")
        self.call = call
        self.code = code
        self.description = description


class InvalidResponseError(BootstrapError):
    """A response was missing a value the bootstrap sequence requires."""


class MissingIdentityError(BootstrapError):
    """Recovery was requested without a mnemonic or account key."""


class DerivationError(BootstrapError, ValueError):
    """Identity material could not be turned into an account identifier."""


class SpacesNotReadyError(BootstrapError):
    """Timed out waiting for the JSON API to report spaces."""
