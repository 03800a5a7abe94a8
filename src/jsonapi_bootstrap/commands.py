"""Typed client for the server's gRPC command interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import grpc

from jsonapi_bootstrap.errors import InvalidResponseError, RPCResponseError, RPCTransportError
from jsonapi_bootstrap.protocol import JSON_API_SCOPE, RPCCall, extract_response_error

DEFAULT_GRPC_ADDR = "127.0.0.1:31007"
SESSION_METADATA_KEY = "token"
CREATE_PROFILE_ICON = 0


@dataclass
class CommandsClient:
    """One persistent channel to ``anytype.ClientCommands``.

    Every call carries its own deadline of ``timeout`` seconds.
    """

    address: str = DEFAULT_GRPC_ADDR
    timeout: float = 120.0
    channel: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.channel is None:
            self.channel = grpc.insecure_channel(self.address)

    def close(self) -> None:
        self.channel.close()

    def __enter__(self) -> "CommandsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _call(self, call: RPCCall, request, *, session_token: str | None = None):
        invoke = self.channel.unary_unary(
            call.path,
            request_serializer=lambda message: message.SerializeToString(),
            response_deserializer=call.response_class.FromString,
        )
        metadata = ((SESSION_METADATA_KEY, session_token),) if session_token else None
        try:
            response = invoke(request, timeout=self.timeout, metadata=metadata)
        except grpc.RpcError as exc:
            raise RPCTransportError(call.method, _describe_rpc_error(exc)) from exc

        error = extract_response_error(call, response)
        if error is not None:
            raise RPCResponseError(call.method, error.code, error.description)
        return response

    def initial_set_parameters(self, *, platform: str, version: str, workdir: str) -> None:
        call = RPCCall.INITIAL_SET_PARAMETERS
        self._call(call, call.request(platform=platform, version=version, workdir=workdir))

    def wallet_create(self, *, root_path: str) -> tuple[str, str]:
        call = RPCCall.WALLET_CREATE
        response = self._call(call, call.request(rootPath=root_path))
        return response.mnemonic, response.accountKey

    def wallet_recover(self, *, root_path: str, mnemonic: str, account_key: str) -> None:
        call = RPCCall.WALLET_RECOVER
        self._call(
            call,
            call.request(rootPath=root_path, mnemonic=mnemonic, accountKey=account_key),
        )

    def account_create(self, *, name: str, jsonapi_addr: str, icon: int = CREATE_PROFILE_ICON) -> str:
        call = RPCCall.ACCOUNT_CREATE
        response = self._call(
            call,
            call.request(name=name, icon=icon, jsonApiListenAddr=jsonapi_addr),
        )
        if not response.HasField("account"):
            raise InvalidResponseError("AccountCreate succeeded but account is nil")
        return response.account.id

    def account_select(self, *, account_id: str, root_path: str, jsonapi_addr: str) -> str:
        call = RPCCall.ACCOUNT_SELECT
        response = self._call(
            call,
            call.request(id=account_id, rootPath=root_path, jsonApiListenAddr=jsonapi_addr),
        )
        return response.account.id if response.HasField("account") else ""

    def wallet_create_session(self, *, auth_field: str, auth_value: str) -> str:
        call = RPCCall.WALLET_CREATE_SESSION
        response = self._call(call, call.request(**{auth_field: auth_value}))
        if not response.token:
            raise InvalidResponseError("WalletCreateSession returned empty token")
        return response.token

    def create_app(self, *, app_name: str, session_token: str) -> str:
        call = RPCCall.CREATE_APP
        request = call.request()
        request.app.appName = app_name
        request.app.scope = JSON_API_SCOPE
        response = self._call(call, request, session_token=session_token)
        if not response.appKey:
            raise InvalidResponseError("AccountLocalLinkCreateApp returned empty app key")
        return response.appKey

    def account_stop(self, *, session_token: str | None = None) -> None:
        call = RPCCall.ACCOUNT_STOP
        self._call(call, call.request(), session_token=session_token)


def _describe_rpc_error(exc: grpc.RpcError) -> str:
    code = exc.code() if hasattr(exc, "code") else None
    details = exc.details() if hasattr(exc, "details") else None
    if code is not None:
        return f"{code.name}: {details}" if details else code.name
    return str(exc)
