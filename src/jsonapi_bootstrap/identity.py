"""Identity material handling for the bootstrap sequence."""

from __future__ import annotations

from dataclasses import dataclass

from jsonapi_bootstrap.crypto.account_identity import (
    account_node_from_key,
    account_node_from_mnemonic,
    derive_account_id,
)
from jsonapi_bootstrap.errors import DerivationError, MissingIdentityError

DERIVATION_INDEX = 0


@dataclass(frozen=True)
class IdentityMaterial:
    """A recovery phrase and/or a base64 account key.

    When both are present the account key is authoritative.
    """

    mnemonic: str = ""
    account_key: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.mnemonic and not self.account_key

    def require(self) -> "IdentityMaterial":
        if self.is_empty:
            raise MissingIdentityError("provide either --mnemonic or --account-key (or use --create)")
        return self

    def session_auth(self) -> tuple[str, str]:
        """Return the ``(field, value)`` pair used to open a session."""
        if self.account_key:
            return "accountKey", self.account_key
        if self.mnemonic:
            return "mnemonic", self.mnemonic
        raise MissingIdentityError("cannot create session: no mnemonic or account key available")

    def derive_account_id(self, index: int = DERIVATION_INDEX) -> str:
        if self.mnemonic:
            try:
                node = account_node_from_mnemonic(self.mnemonic, index)
            except DerivationError as exc:
                raise DerivationError(f"derive account ID from mnemonic: {exc}") from exc
        elif self.account_key:
            try:
                node = account_node_from_key(self.account_key)
            except DerivationError as exc:
                raise DerivationError(f"derive account ID from account key: {exc}") from exc
        else:
            raise MissingIdentityError("cannot derive account ID: no mnemonic or account key available")
        return derive_account_id(node)
