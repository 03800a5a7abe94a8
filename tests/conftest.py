from __future__ import annotations

import pytest

from jsonapi_bootstrap.errors import RPCResponseError

MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)


class FakeCommands:
    """Stands in for CommandsClient and records every call in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.sessions = iter(["s1", "s2", "s3"])
        self.app_keys = iter(["bk1", "bk2", "bk3"])
        self.fail_on: str | None = None
        self.closed = False

    def __enter__(self) -> "FakeCommands":
        return self

    def __exit__(self, *exc_info) -> None:
        self.closed = True

    def _record(self, _call: str, /, **kwargs) -> None:
        self.calls.append((_call, kwargs))
        if _call == self.fail_on:
            raise RPCResponseError(_call, 101, "failed")

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def initial_set_parameters(self, *, platform: str, version: str, workdir: str) -> None:
        self._record("InitialSetParameters", platform=platform, version=version, workdir=workdir)

    def wallet_create(self, *, root_path: str) -> tuple[str, str]:
        self._record("WalletCreate", root_path=root_path)
        return "abc", "k1"

    def wallet_recover(self, *, root_path: str, mnemonic: str, account_key: str) -> None:
        self._record("WalletRecover", root_path=root_path, mnemonic=mnemonic, account_key=account_key)

    def account_create(self, *, name: str, jsonapi_addr: str) -> str:
        self._record("AccountCreate", name=name, jsonapi_addr=jsonapi_addr)
        return "acc1"

    def account_select(self, *, account_id: str, root_path: str, jsonapi_addr: str) -> str:
        self._record(
            "AccountSelect",
            account_id=account_id,
            root_path=root_path,
            jsonapi_addr=jsonapi_addr,
        )
        return account_id

    def wallet_create_session(self, *, auth_field: str, auth_value: str) -> str:
        self._record("WalletCreateSession", auth_field=auth_field, auth_value=auth_value)
        return next(self.sessions)

    def create_app(self, *, app_name: str, session_token: str) -> str:
        self._record("AccountLocalLinkCreateApp", app_name=app_name, session_token=session_token)
        return next(self.app_keys)

    def account_stop(self, *, session_token: str | None = None) -> None:
        self._record("AccountStop", session_token=session_token)


class FakeSpacesClient:
    def __init__(self, listen_addr: str, app_key: str) -> None:
        self.listen_addr = listen_addr
        self.app_key = app_key
        self.closed = False

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_commands() -> FakeCommands:
    return FakeCommands()


@pytest.fixture
def mnemonic() -> str:
    return MNEMONIC


@pytest.fixture
def fake_spaces_factory():
    return FakeSpacesClient
