"""Wire schema for the subset of ``anytype.ClientCommands`` used by the bootstrap.

Only the fields the bootstrap reads or writes are described. Field numbers
match the server's protobuf definitions, so unknown fields in responses are
skipped by the protobuf runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "anytype"
SERVICE = "ClientCommands"

JSON_API_SCOPE = 1

_F = descriptor_pb2.FieldDescriptorProto
_STRING = _F.TYPE_STRING
_INT32 = _F.TYPE_INT32
_INT64 = _F.TYPE_INT64

# name -> [(number, field_name, type or message name, oneof name)]
_MESSAGES: dict[str, list[tuple]] = {
    "ResponseError": [(1, "code", _INT32, None), (2, "description", _STRING, None)],
    "Account": [(1, "id", _STRING, None)],
    "AppInfo": [(2, "appName", _STRING, None), (6, "scope", _INT32, None)],
    "InitialSetParametersRequest": [
        (1, "platform", _STRING, None),
        (2, "version", _STRING, None),
        (3, "workdir", _STRING, None),
    ],
    "WalletCreateRequest": [(1, "rootPath", _STRING, None)],
    "WalletCreateResponse": [
        (1, "error", "ResponseError", None),
        (2, "mnemonic", _STRING, None),
        (3, "accountKey", _STRING, None),
    ],
    "WalletRecoverRequest": [
        (1, "rootPath", _STRING, None),
        (2, "mnemonic", _STRING, None),
        (4, "accountKey", _STRING, None),
    ],
    "WalletCreateSessionRequest": [
        (1, "mnemonic", _STRING, "auth"),
        (4, "accountKey", _STRING, "auth"),
    ],
    "WalletCreateSessionResponse": [
        (1, "error", "ResponseError", None),
        (2, "token", _STRING, None),
    ],
    "AccountCreateRequest": [
        (1, "name", _STRING, None),
        (4, "icon", _INT64, None),
        (9, "jsonApiListenAddr", _STRING, None),
    ],
    "AccountSelectRequest": [
        (1, "id", _STRING, None),
        (2, "rootPath", _STRING, None),
        (7, "jsonApiListenAddr", _STRING, None),
    ],
    "AccountResponse": [
        (1, "error", "ResponseError", None),
        (2, "account", "Account", None),
    ],
    "AccountStopRequest": [],
    "CreateAppRequest": [(1, "app", "AppInfo", None)],
    "CreateAppResponse": [
        (1, "error", "ResponseError", None),
        (2, "appKey", _STRING, None),
    ],
    "ErrorResponse": [(1, "error", "ResponseError", None)],
}


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="jsonapi_bootstrap/client_commands.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for name, fields in _MESSAGES.items():
        message = file_proto.message_type.add(name=name)
        oneofs: list[str] = []
        for number, field_name, kind, oneof in fields:
            field = message.field.add(name=field_name, number=number, label=_F.LABEL_OPTIONAL)
            if isinstance(kind, str):
                field.type = _F.TYPE_MESSAGE
                field.type_name = f".{PACKAGE}.{kind}"
            else:
                field.type = kind
            if oneof is not None:
                if oneof not in oneofs:
                    oneofs.append(oneof)
                    message.oneof_decl.add(name=oneof)
                field.oneof_index = oneofs.index(oneof)
    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())


def message_class(name: str):
    descriptor = _POOL.FindMessageTypeByName(f"{PACKAGE}.{name}")
    return message_factory.GetMessageClass(descriptor)


class RPCCall(Enum):
    """Every RPC the bootstrap issues, with its request/response message types."""

    INITIAL_SET_PARAMETERS = ("InitialSetParameters", "InitialSetParametersRequest", "ErrorResponse")
    WALLET_CREATE = ("WalletCreate", "WalletCreateRequest", "WalletCreateResponse")
    WALLET_RECOVER = ("WalletRecover", "WalletRecoverRequest", "ErrorResponse")
    WALLET_CREATE_SESSION = (
        "WalletCreateSession",
        "WalletCreateSessionRequest",
        "WalletCreateSessionResponse",
    )
    ACCOUNT_CREATE = ("AccountCreate", "AccountCreateRequest", "AccountResponse")
    ACCOUNT_SELECT = ("AccountSelect", "AccountSelectRequest", "AccountResponse")
    ACCOUNT_STOP = ("AccountStop", "AccountStopRequest", "ErrorResponse")
    CREATE_APP = ("AccountLocalLinkCreateApp", "CreateAppRequest", "CreateAppResponse")

    def __init__(self, method: str, request_type: str, response_type: str) -> None:
        self.method = method
        self.request_type = request_type
        self.response_type = response_type

    @property
    def path(self) -> str:
        return f"/{PACKAGE}.{SERVICE}/{self.method}"

    def request(self, **fields):
        return message_class(self.request_type)(**fields)

    @property
    def response_class(self):
        return message_class(self.response_type)

    def response(self, **fields):
        return self.response_class(**fields)


@dataclass(frozen=True)
class ResponseError:
    call: RPCCall
    code: int
    description: str


def extract_response_error(call: RPCCall, response) -> ResponseError | None:
    """Return the error embedded in ``response``, or ``None`` when the code is zero."""
    if response.DESCRIPTOR.full_name != f"{PACKAGE}.{call.response_type}":
        raise TypeError(f"{call.method} returned unexpected message {response.DESCRIPTOR.full_name}")
    if not response.HasField("error"):
        return None
    error = response.error
    if error.code == 0:
        return None
    return ResponseError(call=call, code=error.code, description=error.description)
