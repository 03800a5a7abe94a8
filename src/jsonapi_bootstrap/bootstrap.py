"""Account bootstrap sequence against a running server."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Callable

from jsonapi_bootstrap.commands import CommandsClient
from jsonapi_bootstrap.errors import BootstrapError, SpacesNotReadyError
from jsonapi_bootstrap.identity import IdentityMaterial
from jsonapi_bootstrap.spaces import (
    DEFAULT_JSONAPI_ADDR,
    DEFAULT_POLL_INTERVAL,
    Space,
    SpacesClient,
    wait_for_spaces,
)

DEFAULT_APP_NAME = "jsonapi-cli"
DEFAULT_PROFILE_NAME = "Json API user"
DEFAULT_PLATFORM = "jsonapi-cli"
DEFAULT_CLIENT_VERSION = "0.0.0-jsonapi"
MAX_SPACES_ATTEMPTS = 2


@dataclass(frozen=True)
class BootstrapOptions:
    root_path: str
    account_id: str = ""
    mnemonic: str = ""
    account_key: str = ""
    create: bool = False
    profile_name: str = DEFAULT_PROFILE_NAME
    jsonapi_addr: str = DEFAULT_JSONAPI_ADDR
    app_name: str = DEFAULT_APP_NAME
    platform: str = DEFAULT_PLATFORM
    client_version: str = DEFAULT_CLIENT_VERSION

    def __post_init__(self) -> None:
        if not self.root_path:
            raise BootstrapError("missing required root path")

    @property
    def identity(self) -> IdentityMaterial:
        return IdentityMaterial(mnemonic=self.mnemonic, account_key=self.account_key)


@dataclass(frozen=True)
class Credentials:
    account_id: str
    app_key: str
    session_token: str


def send_initial_parameters(client: CommandsClient, options: BootstrapOptions) -> None:
    client.initial_set_parameters(
        platform=options.platform,
        version=options.client_version,
        workdir=options.root_path,
    )


def _create_account(
    client: CommandsClient, options: BootstrapOptions, stdout
) -> tuple[str, IdentityMaterial]:
    mnemonic, account_key = client.wallet_create(root_path=options.root_path)
    print("Wallet created.", file=stdout)
    print(f"Mnemonic: {mnemonic}", file=stdout)
    print(f"Account key (base64): {account_key}", file=stdout)

    account_id = client.account_create(
        name=options.profile_name,
        jsonapi_addr=options.jsonapi_addr,
    )
    print(f"Account created: {account_id}", file=stdout)
    return account_id, IdentityMaterial(mnemonic=mnemonic, account_key=account_key)


def select_account(
    client: CommandsClient, options: BootstrapOptions, account_id: str, stdout
) -> None:
    client.account_select(
        account_id=account_id,
        root_path=options.root_path,
        jsonapi_addr=options.jsonapi_addr,
    )
    print(f"Account selected: {account_id}", file=stdout)


def _recover_account(
    client: CommandsClient, options: BootstrapOptions, stdout
) -> tuple[str, IdentityMaterial]:
    identity = options.identity.require()
    client.wallet_recover(
        root_path=options.root_path,
        mnemonic=identity.mnemonic,
        account_key=identity.account_key,
    )
    print("Wallet recovery completed.", file=stdout)

    account_id = options.account_id or identity.derive_account_id()
    select_account(client, options, account_id, stdout)
    return account_id, identity


def acquire_credentials(
    client: CommandsClient,
    options: BootstrapOptions,
    account_id: str,
    identity: IdentityMaterial,
) -> Credentials:
    """Open a session for ``identity`` and issue a JSON API key under it."""
    auth_field, auth_value = identity.session_auth()
    session_token = client.wallet_create_session(auth_field=auth_field, auth_value=auth_value)
    app_key = client.create_app(app_name=options.app_name, session_token=session_token)
    return Credentials(account_id=account_id, app_key=app_key, session_token=session_token)


def run_bootstrap(
    client: CommandsClient, options: BootstrapOptions, stdout=sys.stdout
) -> tuple[Credentials, IdentityMaterial]:
    """Run the full bootstrap sequence and return the issued credentials.

    Any RPC failure propagates as a ``BootstrapError`` subclass; nothing is
    retried here.
    """
    send_initial_parameters(client, options)

    if options.create:
        account_id, identity = _create_account(client, options, stdout)
    else:
        account_id, identity = _recover_account(client, options, stdout)

    credentials = acquire_credentials(client, options, account_id, identity)
    return credentials, identity


def restart_account(
    client: CommandsClient,
    options: BootstrapOptions,
    credentials: Credentials,
    identity: IdentityMaterial,
    stdout=sys.stdout,
) -> Credentials:
    """Stop the account, select it again and reissue session and app key."""
    client.account_stop(session_token=credentials.session_token)
    # The selected account id is trusted across the restart.
    select_account(client, options, credentials.account_id, stdout)
    return acquire_credentials(client, options, credentials.account_id, identity)


@dataclass(frozen=True)
class SpacesResult:
    credentials: Credentials
    spaces: list[Space]
    attempts: int
    error: str | None = None

    @property
    def ready(self) -> bool:
        return self.error is None


def ensure_spaces(
    client: CommandsClient,
    options: BootstrapOptions,
    credentials: Credentials,
    identity: IdentityMaterial,
    *,
    wait: float,
    interval: float = DEFAULT_POLL_INTERVAL,
    spaces_client_factory: Callable[[str, str], SpacesClient] | None = None,
    stdout=sys.stdout,
) -> SpacesResult:
    """Wait for spaces, restarting the account once if the first window is empty."""
    factory = spaces_client_factory or (
        lambda listen_addr, app_key: SpacesClient(listen_addr=listen_addr, app_key=app_key)
    )
    error: str | None = None
    for attempt in range(1, MAX_SPACES_ATTEMPTS + 1):
        if attempt > 1:
            print(f"Spaces not ready within {_format_seconds(wait)}, retrying restart once...", file=stdout)
            credentials = restart_account(client, options, credentials, identity, stdout)

        spaces_client = factory(options.jsonapi_addr, credentials.app_key)
        try:
            spaces = wait_for_spaces(spaces_client, wait=wait, interval=interval)
        except SpacesNotReadyError as exc:
            error = str(exc)
            continue
        finally:
            spaces_client.close()
        return SpacesResult(credentials=credentials, spaces=spaces, attempts=attempt)

    return SpacesResult(
        credentials=credentials,
        spaces=[],
        attempts=MAX_SPACES_ATTEMPTS,
        error=error,
    )


def _format_seconds(value: float) -> str:
    return f"{value:g}s"
