"""Command-line interface for jsonapi-bootstrap."""

from __future__ import annotations

import argparse
import json
import re
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Sequence

from jsonapi_bootstrap.bootstrap import BootstrapOptions, Credentials, ensure_spaces, run_bootstrap
from jsonapi_bootstrap.cli.config import CLIConfig, ConfigError, load_cli_config, parse_duration
from jsonapi_bootstrap.commands import CommandsClient
from jsonapi_bootstrap.errors import (
    BootstrapError,
    DerivationError,
    InvalidResponseError,
    MissingIdentityError,
    RPCResponseError,
    RPCTransportError,
)
from jsonapi_bootstrap.spaces import Space, jsonapi_base_url

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_RPC_ERROR = 2
EXIT_INVALID_RESPONSE = 3

_SENSITIVE_FIELDS = (
    "mnemonic",
    "account_key",
    "accountkey",
    "app_key",
    "appkey",
    "token",
    "authorization",
)


def _package_version() -> str:
    try:
        return pkg_version("jsonapi-bootstrap")
    except PackageNotFoundError:
        return "0.0.0+local"


def _duration(value: str) -> float:
    try:
        return parse_duration(value)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jsonapi-bootstrap",
        description="Create or select an account on a running server and issue a JSON API key.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"jsonapi-bootstrap {_package_version()}",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to CLI config TOML (default: ~/.jsonapi_bootstrap/config.toml)",
    )
    parser.add_argument("--root", default="", help="Root path where the account data is stored (required)")
    parser.add_argument(
        "--account-id",
        default="",
        help="Account ID (optional, derived from mnemonic/account key if empty)",
    )
    parser.add_argument("--mnemonic", default="", help="Mnemonic to recover an existing wallet")
    parser.add_argument(
        "--account-key",
        default="",
        help="Account master key (base64) to recover an existing wallet",
    )
    parser.add_argument("--name", default=None, help="Profile name when creating a new account")
    parser.add_argument("--grpc", default=None, help="gRPC address of the running server")
    parser.add_argument(
        "--jsonapi",
        default=None,
        help="Listen address for the JSON API (passed to AccountCreate/AccountSelect)",
    )
    parser.add_argument("--app-name", default=None, help="App name for generating an API key")
    parser.add_argument("--platform", default=None, help="Client platform label for InitialSetParameters")
    parser.add_argument(
        "--client-version",
        default=None,
        help="Client version label for InitialSetParameters",
    )
    parser.add_argument("--timeout", type=_duration, default=None, help="Per-RPC timeout (e.g. 90s, 2m)")
    parser.add_argument(
        "--wait-spaces",
        type=_duration,
        default=None,
        help="Wait up to this duration for spaces to sync before listing (0 disables)",
    )
    parser.add_argument(
        "--create",
        action="store_true",
        help="Create a fresh account instead of selecting an existing one",
    )
    parser.add_argument("--json", action="store_true", help="Print the final summary as JSON")
    return parser


def _sanitize_error_text(value: str) -> str:
    redacted = value
    for field in _SENSITIVE_FIELDS:
        redacted = re.sub(
            rf"(?i)({field}\s*[=:]\s*)([^,\s]+)",
            r"\1[REDACTED]",
            redacted,
        )
    redacted = re.sub(r"(?i)(bearer\s+)(\S+)", r"\1[REDACTED]", redacted)
    return redacted


def _print_error(stderr, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {_sanitize_error_text(message)}", file=stderr)
    return code


def _print_bootstrap_error(stderr, exc: BootstrapError) -> int:
    if isinstance(exc, (MissingIdentityError, DerivationError)):
        return _print_error(stderr, "identity error", str(exc), code=EXIT_VALIDATION_ERROR)
    if isinstance(exc, RPCResponseError):
        return _print_error(stderr, "rpc error", str(exc), code=EXIT_RPC_ERROR)
    if isinstance(exc, RPCTransportError):
        return _print_error(stderr, "transport error", str(exc), code=EXIT_RPC_ERROR)
    if isinstance(exc, InvalidResponseError):
        return _print_error(stderr, "response error", str(exc), code=EXIT_INVALID_RESPONSE)
    return _print_error(stderr, "bootstrap error", str(exc), code=EXIT_VALIDATION_ERROR)


def _build_options(args, config: CLIConfig) -> BootstrapOptions:
    return BootstrapOptions(
        root_path=args.root,
        account_id=args.account_id,
        mnemonic=args.mnemonic,
        account_key=args.account_key,
        create=args.create,
        profile_name=args.name or config.profile_name,
        jsonapi_addr=args.jsonapi or config.jsonapi_addr,
        app_name=args.app_name or config.app_name,
        platform=args.platform or config.platform,
        client_version=args.client_version or config.client_version,
    )


def _print_ready(stdout, *, credentials: Credentials, jsonapi_addr: str) -> None:
    base_url = jsonapi_base_url(jsonapi_addr)
    print("----- JsonAPI is ready -----", file=stdout)
    print(f"Account ID: {credentials.account_id}", file=stdout)
    print(f"JsonAPI listen address: {base_url}", file=stdout)
    print(f"Bearer token (app key): {credentials.app_key}", file=stdout)
    print(
        f"Example: curl -H 'Authorization: Bearer {credentials.app_key}' {base_url}/v1/spaces",
        file=stdout,
    )


def _print_spaces(stdout, spaces: list[Space]) -> None:
    print(f"Spaces ({len(spaces)}):", file=stdout)
    for space in spaces:
        print(f"- {space.name} ({space.id})", file=stdout)


def main(argv: Sequence[str] | None = None, *, stdout=sys.stdout, stderr=sys.stderr) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args.config)
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_VALIDATION_ERROR)

    if not args.root:
        return _print_error(stderr, "usage error", "missing required flag: --root", code=EXIT_VALIDATION_ERROR)
    if not args.create and not args.mnemonic and not args.account_key:
        return _print_error(
            stderr,
            "identity error",
            "provide either --mnemonic or --account-key (or use --create)",
            code=EXIT_VALIDATION_ERROR,
        )

    timeout = args.timeout if args.timeout is not None else config.timeout
    if timeout <= 0:
        return _print_error(stderr, "usage error", "--timeout must be positive", code=EXIT_VALIDATION_ERROR)
    wait_spaces = args.wait_spaces if args.wait_spaces is not None else config.wait_spaces
    grpc_addr = args.grpc or config.grpc_addr
    options = _build_options(args, config)
    # Human-readable progress goes to stderr when stdout carries the JSON summary.
    progress = stderr if args.json else stdout

    with CommandsClient(address=grpc_addr, timeout=timeout) as client:
        try:
            credentials, identity = run_bootstrap(client, options, stdout=progress)
        except BootstrapError as exc:
            return _print_bootstrap_error(stderr, exc)

        if not args.json:
            _print_ready(stdout, credentials=credentials, jsonapi_addr=options.jsonapi_addr)

        result = None
        if wait_spaces > 0:
            try:
                result = ensure_spaces(
                    client,
                    options,
                    credentials,
                    identity,
                    wait=wait_spaces,
                    interval=config.poll_interval,
                    stdout=progress,
                )
            except BootstrapError as exc:
                return _print_bootstrap_error(stderr, exc)
            credentials = result.credentials

    if args.json:
        summary = {
            "account_id": credentials.account_id,
            "jsonapi_url": jsonapi_base_url(options.jsonapi_addr),
            "app_key": credentials.app_key,
            "spaces_ready": None if result is None else result.ready,
            "spaces": [] if result is None else [space.model_dump() for space in result.spaces],
            "attempts": 0 if result is None else result.attempts,
        }
        if result is not None and not result.ready:
            summary["spaces_error"] = result.error
        print(json.dumps(summary, sort_keys=True), file=stdout)
        return EXIT_SUCCESS

    if result is not None:
        if result.ready:
            if result.attempts > 1:
                print(f"Bearer token after restart (app key): {credentials.app_key}", file=stdout)
            _print_spaces(stdout, result.spaces)
        else:
            print(f"Spaces still empty after retry ({wait_spaces:g}s): {result.error}", file=stdout)
    return EXIT_SUCCESS


if __name__ == "__main__":
    raise SystemExit(main())
