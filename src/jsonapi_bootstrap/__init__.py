"""jsonapi-bootstrap public surface."""

from jsonapi_bootstrap.bootstrap import (
    BootstrapOptions,
    Credentials,
    SpacesResult,
    acquire_credentials,
    ensure_spaces,
    run_bootstrap,
    restart_account,
    send_initial_parameters,
)
from jsonapi_bootstrap.commands import CommandsClient
from jsonapi_bootstrap.errors import (
    BootstrapError,
    DerivationError,
    InvalidResponseError,
    MissingIdentityError,
    RPCResponseError,
    RPCTransportError,
    SpacesNotReadyError,
)
from jsonapi_bootstrap.identity import IdentityMaterial
from jsonapi_bootstrap.protocol import ResponseError, RPCCall, extract_response_error
from jsonapi_bootstrap.spaces import Space, SpacesClient, wait_for_spaces

__all__ = [
    "BootstrapError",
    "RPCTransportError",
    "RPCResponseError",
    "InvalidResponseError",
    "MissingIdentityError",
    "DerivationError",
    "SpacesNotReadyError",
    "BootstrapOptions",
    "Credentials",
    "SpacesResult",
    "send_initial_parameters",
    "run_bootstrap",
    "acquire_credentials",
    "restart_account",
    "ensure_spaces",
    "CommandsClient",
    "IdentityMaterial",
    "RPCCall",
    "ResponseError",
    "extract_response_error",
    "Space",
    "SpacesClient",
    "wait_for_spaces",
]
