from __future__ import annotations

import io
import sys
import types

import pytest

import jsonapi_bootstrap
from jsonapi_bootstrap.bootstrap import (
    BootstrapOptions,
    Credentials,
    ensure_spaces,
    run_bootstrap,
)
from jsonapi_bootstrap.errors import (
    BootstrapError,
    MissingIdentityError,
    RPCResponseError,
    SpacesNotReadyError,
)
from jsonapi_bootstrap.identity import IdentityMaterial
from jsonapi_bootstrap.spaces import Space


def test_create_scenario_reports_account_and_bearer_key(fake_commands) -> None:
    client = fake_commands
    out = io.StringIO()

    credentials, identity = run_bootstrap(client, BootstrapOptions(root_path="/tmp/x", create=True), stdout=out)

    assert credentials == Credentials(account_id="acc1", app_key="bk1", session_token="s1")
    assert identity == IdentityMaterial(mnemonic="abc", account_key="k1")
    assert client.names == [
        "InitialSetParameters",
        "WalletCreate",
        "AccountCreate",
        "WalletCreateSession",
        "AccountLocalLinkCreateApp",
    ]
    assert client.calls[0][1]["workdir"] == "/tmp/x"
    assert client.calls[2][1] == {"name": "Json API user", "jsonapi_addr": "127.0.0.1:31009"}
    assert client.calls[3][1] == {"auth_field": "accountKey", "auth_value": "k1"}
    assert client.calls[4][1]["session_token"] == "s1"
    assert "Mnemonic: abc" in out.getvalue()
    assert "Account created: acc1" in out.getvalue()


def test_recover_with_both_materials_uses_account_key_for_session(fake_commands, mnemonic) -> None:
    client = fake_commands
    options = BootstrapOptions(
        root_path="/tmp/x",
        account_id="acc9",
        mnemonic=mnemonic,
        account_key="k1",
    )

    credentials, _ = run_bootstrap(client, options, stdout=io.StringIO())

    assert credentials.account_id == "acc9"
    sessions = [kwargs for name, kwargs in client.calls if name == "WalletCreateSession"]
    assert sessions == [{"auth_field": "accountKey", "auth_value": "k1"}]
    assert client.names == [
        "InitialSetParameters",
        "WalletRecover",
        "AccountSelect",
        "WalletCreateSession",
        "AccountLocalLinkCreateApp",
    ]


def test_recover_derives_account_id_when_absent(fake_commands, mnemonic) -> None:
    client = fake_commands
    options = BootstrapOptions(root_path="/tmp/x", mnemonic=mnemonic)

    credentials, _ = run_bootstrap(client, options, stdout=io.StringIO())

    expected = IdentityMaterial(mnemonic=mnemonic).derive_account_id()
    assert credentials.account_id == expected
    select = dict(client.calls)["AccountSelect"]
    assert select["account_id"] == expected


def test_recover_without_identity_fails_before_identity_calls(fake_commands) -> None:
    client = fake_commands

    with pytest.raises(MissingIdentityError):
        run_bootstrap(client, BootstrapOptions(root_path="/tmp/x"), stdout=io.StringIO())

    assert "WalletRecover" not in client.names
    assert "WalletCreateSession" not in client.names


def test_rpc_error_stops_sequence(fake_commands) -> None:
    client = fake_commands
    client.fail_on = "AccountCreate"

    with pytest.raises(RPCResponseError):
        run_bootstrap(client, BootstrapOptions(root_path="/tmp/x", create=True), stdout=io.StringIO())

    assert client.names[-1] == "AccountCreate"


def test_package_attribute_resolves_to_sequencer_module() -> None:
    assert isinstance(jsonapi_bootstrap.bootstrap, types.ModuleType)
    assert jsonapi_bootstrap.bootstrap is sys.modules["jsonapi_bootstrap.bootstrap"]
    assert jsonapi_bootstrap.run_bootstrap is run_bootstrap


def test_empty_root_path_is_rejected() -> None:
    with pytest.raises(BootstrapError, match="root path"):
        BootstrapOptions(root_path="")


def _run_ensure(monkeypatch, client, spaces_factory, outcomes):
    options = BootstrapOptions(root_path="/tmp/x", create=True)
    credentials, identity = run_bootstrap(client, options, stdout=io.StringIO())
    client.calls.clear()

    polled: list[str] = []
    remaining = list(outcomes)

    def fake_wait(spaces_client, *, wait, interval):  # noqa: ANN001
        polled.append(spaces_client.app_key)
        client.calls.append(("poll", {"app_key": spaces_client.app_key, "wait": wait}))
        outcome = remaining.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr("jsonapi_bootstrap.bootstrap.wait_for_spaces", fake_wait)
    out = io.StringIO()
    result = ensure_spaces(
        client,
        options,
        credentials,
        identity,
        wait=30,
        spaces_client_factory=spaces_factory,
        stdout=out,
    )
    return client, result, polled, out


def test_ensure_spaces_first_window_success_skips_restart(
    monkeypatch, fake_commands, fake_spaces_factory
) -> None:
    spaces = [Space(id="sp1", name="Personal")]
    client, result, polled, _ = _run_ensure(
        monkeypatch, fake_commands, fake_spaces_factory, [spaces]
    )

    assert result.ready
    assert result.attempts == 1
    assert result.spaces == spaces
    assert polled == ["bk1"]
    assert client.names == ["poll"]


def test_ensure_spaces_restarts_once_then_polls_again(
    monkeypatch, fake_commands, fake_spaces_factory
) -> None:
    spaces = [Space(id="sp1", name="Personal")]
    client, result, polled, out = _run_ensure(
        monkeypatch,
        fake_commands,
        fake_spaces_factory,
        [SpacesNotReadyError("spaces still empty"), spaces],
    )

    assert client.names == [
        "poll",
        "AccountStop",
        "AccountSelect",
        "WalletCreateSession",
        "AccountLocalLinkCreateApp",
        "poll",
    ]
    assert client.calls[1][1] == {"session_token": "s1"}
    assert client.calls[2][1]["account_id"] == "acc1"
    assert client.calls[4][1]["session_token"] == "s2"
    assert polled == ["bk1", "bk2"]
    assert all(kwargs["wait"] == 30 for name, kwargs in client.calls if name == "poll")
    assert result.ready
    assert result.attempts == 2
    assert result.credentials == Credentials(account_id="acc1", app_key="bk2", session_token="s2")
    assert "retrying restart once" in out.getvalue()


def test_ensure_spaces_gives_up_after_second_window(
    monkeypatch, fake_commands, fake_spaces_factory
) -> None:
    client, result, polled, _ = _run_ensure(
        monkeypatch,
        fake_commands,
        fake_spaces_factory,
        [SpacesNotReadyError("first"), SpacesNotReadyError("second")],
    )

    assert not result.ready
    assert result.error == "second"
    assert result.spaces == []
    assert result.attempts == 2
    assert polled == ["bk1", "bk2"]
    assert client.names.count("AccountStop") == 1
    assert client.names.count("poll") == 2
