"""
Wallet extension protocol — the secrets boundary.

Defines the narrow capability the session uses to learn the user's
account and to get envelopes signed. The client never sees private
keys: it passes an unsigned envelope and receives a signed one.

Concrete implementations are supplied by the host (a browser-extension
bridge, a hardware wallet, a dev keypair). Tests use FakeExtension.

Every method returns a result object. A refusal or extension-side
failure is reported through the ``error`` field; raising is reserved
for the extension being unreachable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class NetworkDetails:
    """Network the wallet is currently pointed at."""

    network: str | None = None
    network_passphrase: str | None = None
    soroban_rpc_url: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class AddressResult:
    """Address exposed to this client, or the reason it wasn't."""

    address: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class SignResult:
    """Outcome of a signing request.

    Attributes:
        signed_envelope_xdr: Base64 signed TransactionEnvelope.
        signer_address: Account that signed, as reported by the wallet.
        error: Refusal or failure reason. Set instead of the envelope.
    """

    signed_envelope_xdr: str | None = None
    signer_address: str | None = None
    error: str | None = None


@runtime_checkable
class WalletExtension(Protocol):
    """Interface to the external signer."""

    async def is_connected(self) -> bool:
        """Whether the extension is installed and reachable."""
        ...

    async def get_network_details(self) -> NetworkDetails:
        ...

    async def get_address(self) -> AddressResult:
        """Address already exposed to this origin, without prompting."""
        ...

    async def request_access(self) -> AddressResult:
        """Prompt the user to expose an address to this origin."""
        ...

    async def sign_transaction(
        self,
        envelope_xdr: str,
        *,
        network_passphrase: str,
        address: str,
    ) -> SignResult:
        """Ask the user to sign ``envelope_xdr`` with ``address``."""
        ...
