"""
Wallet session state machine.

Tracks whether the wallet extension is reachable, which network it is
on and whether it has exposed an address, and owns the two
session-scoped resources of the pipeline: the processing gate and the
sequence tracker.

States:

    UNKNOWN → {UNAVAILABLE, DISCONNECTED, CONNECTED_UNAUTHORIZED, CONNECTED_AUTHORIZED}

``refresh()`` re-derives the state from three checks in order:
extension reachability, network details, exposed address. The first
failing check decides the state and its failure becomes
``last_error``; refresh never raises. It runs on load, on every poll
tick, on explicit request and on extension events.

Refresh only replaces the session snapshot. A pipeline in flight keeps
the snapshot it started with and is never cancelled by a tick, and
refresh never touches the processing gate.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import StrEnum

from stellar_sdk import TransactionEnvelope

from lottery_bridge.config import LotteryConfig
from lottery_bridge.errors import (
    ActionInProgress,
    ErrorCode,
    NetworkMismatch,
    NotConnected,
    SigningFailure,
)
from lottery_bridge.soroban.assembler import SequenceTracker
from lottery_bridge.soroban.client import ChainClient, SubmissionResult
from lottery_bridge.soroban.decode import XDR_ERRORS
from lottery_bridge.wallet import NetworkDetails, WalletExtension

logger = logging.getLogger(__name__)

EXTENSION_UNAVAILABLE = "wallet extension not installed or not reachable"
ACCESS_REJECTED = "user rejected connection"


class SessionState(StrEnum):
    UNKNOWN = "UNKNOWN"
    UNAVAILABLE = "UNAVAILABLE"
    DISCONNECTED = "DISCONNECTED"
    CONNECTED_UNAUTHORIZED = "CONNECTED_UNAUTHORIZED"
    CONNECTED_AUTHORIZED = "CONNECTED_AUTHORIZED"


@dataclass(frozen=True)
class WalletSession:
    """Snapshot of the wallet as last observed.

    Attributes:
        state: Derived connectivity/authorization state.
        address: Exposed account address.
        network: Wallet's network label (e.g. "TESTNET").
        network_passphrase: Wallet's network passphrase; required to sign.
        soroban_rpc_url: RPC URL the wallet reports, informational.
        is_connected: Extension reachable.
        is_authorized: Address exposed to this client.
        last_error: Diagnostic from the last failing check, if any.
        last_error_code: Category of ``last_error``.
    """

    state: SessionState = SessionState.UNKNOWN
    address: str | None = None
    network: str | None = None
    network_passphrase: str | None = None
    soroban_rpc_url: str | None = None
    is_connected: bool = False
    is_authorized: bool = False
    last_error: str | None = None
    last_error_code: ErrorCode | None = None

    @property
    def can_sign(self) -> bool:
        return (
            self.state == SessionState.CONNECTED_AUTHORIZED
            and self.address is not None
            and self.network_passphrase is not None
        )


class ProcessingGate:
    """Mutual-exclusion flag for state-changing actions of one session.

    Not a queue: a second action while the gate is held fails at once
    with ActionInProgress. Check-and-set happens without awaiting, so
    it is atomic on the event loop.
    """

    def __init__(self) -> None:
        self._holder: str | None = None

    @property
    def processing(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> str | None:
        return self._holder

    def acquire(self, holder: str) -> None:
        if self._holder is not None:
            raise ActionInProgress(
                f"cannot start {holder}: {self._holder} is still processing",
                details={"holder": self._holder},
            )
        self._holder = holder

    def release(self) -> None:
        self._holder = None

    @contextlib.contextmanager
    def hold(self, holder: str) -> Iterator[None]:
        self.acquire(holder)
        try:
            yield
        finally:
            self.release()


SessionListener = Callable[[WalletSession], None]


class SessionManager:
    """Owns the wallet session, its polling loop and its signing path.

    Args:
        extension: The external signer.
        chain: Network boundary used to submit signed envelopes.
        config: Expected network passphrase and poll interval.
    """

    def __init__(
        self,
        extension: WalletExtension,
        chain: ChainClient,
        config: LotteryConfig,
    ) -> None:
        self._extension = extension
        self._chain = chain
        self._config = config
        self._session = WalletSession()
        self._gate = ProcessingGate()
        self._sequences = SequenceTracker()
        self._listeners: list[SessionListener] = []
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def session(self) -> WalletSession:
        return self._session

    @property
    def gate(self) -> ProcessingGate:
        return self._gate

    @property
    def sequences(self) -> SequenceTracker:
        return self._sequences

    @property
    def processing(self) -> bool:
        return self._gate.processing

    def add_listener(self, listener: SessionListener) -> None:
        """Call ``listener`` with the new session whenever it changes."""
        self._listeners.append(listener)

    # -----------------------------------------------------------------
    # State derivation
    # -----------------------------------------------------------------

    async def refresh(self) -> WalletSession:
        """Re-derive the session from the extension. Never raises."""
        session = await self._derive()
        self._set(session)
        return session

    async def notify_extension_event(self) -> WalletSession:
        """Push-path entry point: the extension reported a change."""
        return await self.refresh()

    async def _derive(self) -> WalletSession:
        try:
            connected = await self._extension.is_connected()
        except Exception as exc:
            logger.debug("extension reachability check failed: %s", exc)
            return _unavailable(f"{EXTENSION_UNAVAILABLE}: {exc}")
        if not connected:
            return _unavailable(EXTENSION_UNAVAILABLE)

        try:
            details = await self._extension.get_network_details()
        except Exception as exc:
            details = NetworkDetails(error=f"failed to get network details: {exc}")
        if details.error:
            return WalletSession(
                state=SessionState.DISCONNECTED,
                is_connected=True,
                last_error=details.error,
                last_error_code=ErrorCode.UNAVAILABLE,
            )

        base = WalletSession(
            state=SessionState.CONNECTED_UNAUTHORIZED,
            network=details.network,
            network_passphrase=details.network_passphrase,
            soroban_rpc_url=details.soroban_rpc_url,
            is_connected=True,
        )
        mismatch = self._mismatch(details.network_passphrase)

        try:
            exposed = await self._extension.get_address()
        except Exception as exc:
            return dataclasses.replace(
                base,
                last_error=f"failed to get address: {exc}",
                last_error_code=ErrorCode.UNAUTHORIZED,
            )
        if exposed.error or not exposed.address:
            if exposed.error:
                return dataclasses.replace(
                    base,
                    last_error=exposed.error,
                    last_error_code=ErrorCode.UNAUTHORIZED,
                )
            return _with_mismatch(base, mismatch)

        authorized = dataclasses.replace(
            base,
            state=SessionState.CONNECTED_AUTHORIZED,
            address=exposed.address,
            is_authorized=True,
        )
        return _with_mismatch(authorized, mismatch)

    def _mismatch(self, passphrase: str | None) -> str | None:
        expected = self._config.network_passphrase
        if passphrase is None or passphrase == expected:
            return None
        return f"wallet is on a different network ({passphrase!r}, expected {expected!r})"

    def _set(self, session: WalletSession) -> None:
        if session == self._session:
            return
        previous = self._session
        self._session = session
        if previous.state != session.state:
            logger.info("wallet session %s -> %s", previous.state, session.state)
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("session listener failed")

    # -----------------------------------------------------------------
    # User actions
    # -----------------------------------------------------------------

    async def connect(self) -> WalletSession:
        """Ask the extension to expose an address to this client.

        Meaningful from DISCONNECTED and CONNECTED_UNAUTHORIZED. An
        already-authorized session is returned unchanged; a refusal
        keeps the session unauthorized with the reason recorded.
        """
        current = self._session
        if current.state == SessionState.CONNECTED_AUTHORIZED:
            return current

        try:
            connected = await self._extension.is_connected()
        except Exception as exc:
            connected = False
            logger.debug("extension reachability check failed: %s", exc)
        if not connected:
            session = _unavailable("please install the wallet extension")
            self._set(session)
            return session

        try:
            access = await self._extension.request_access()
        except Exception as exc:
            access_error: str | None = f"access request failed: {exc}"
            exposed_address = None
        else:
            access_error = access.error
            exposed_address = access.address
        if access_error or not exposed_address:
            fallback = (
                current.state
                if current.state
                in (SessionState.DISCONNECTED, SessionState.CONNECTED_UNAUTHORIZED)
                else SessionState.DISCONNECTED
            )
            session = dataclasses.replace(
                current,
                state=fallback,
                is_connected=True,
                is_authorized=False,
                address=None,
                last_error=access_error or ACCESS_REJECTED,
                last_error_code=ErrorCode.UNAUTHORIZED,
            )
            self._set(session)
            return session

        try:
            details = await self._extension.get_network_details()
        except Exception as exc:
            details = NetworkDetails(error=f"failed to get network details: {exc}")
        if details.error:
            session = WalletSession(
                state=SessionState.DISCONNECTED,
                is_connected=True,
                last_error=details.error,
                last_error_code=ErrorCode.UNAVAILABLE,
            )
            self._set(session)
            return session

        session = _with_mismatch(
            WalletSession(
                state=SessionState.CONNECTED_AUTHORIZED,
                address=exposed_address,
                network=details.network,
                network_passphrase=details.network_passphrase,
                soroban_rpc_url=details.soroban_rpc_url,
                is_connected=True,
                is_authorized=True,
            ),
            self._mismatch(details.network_passphrase),
        )
        self._set(session)
        return session

    async def sign_and_submit(self, envelope_xdr: str) -> SubmissionResult:
        """Have the wallet sign ``envelope_xdr`` and submit it.

        Uses the session snapshot taken at call time; a poll tick during
        signing does not affect this call. The envelope's source account
        must still be the session address: when the wallet switched
        accounts after the envelope was built, nothing is signed.

        Returns:
            The network's SubmissionResult, unmodified.

        Raises:
            NotConnected: No authorized address or passphrase.
            NetworkMismatch: The wallet is on another network.
            SigningFailure: Refusal, extension error, a source account
                other than the session address, or an unusable signed
                envelope.
        """
        session = self._session
        address, passphrase = session.address, session.network_passphrase
        if not session.can_sign or address is None or passphrase is None:
            raise NotConnected("wallet not connected")

        mismatch = self._mismatch(passphrase)
        if mismatch is not None:
            raise NetworkMismatch(mismatch)

        try:
            unsigned = TransactionEnvelope.from_xdr(envelope_xdr, passphrase)
        except XDR_ERRORS as exc:
            raise SigningFailure(f"prepared envelope could not be parsed: {exc}") from exc
        source = unsigned.transaction.source.account_id
        if source != address:
            raise SigningFailure(
                f"wallet account changed to {address} since the transaction "
                f"was built for {source}",
                details={"source": source, "session_address": address},
            )

        try:
            signed = await self._extension.sign_transaction(
                envelope_xdr,
                network_passphrase=passphrase,
                address=address,
            )
        except Exception as exc:
            raise SigningFailure(f"signing failed: {exc}") from exc
        if signed.error:
            raise SigningFailure(signed.error)
        if not signed.signed_envelope_xdr:
            raise SigningFailure("transaction signing failed")
        if signed.signer_address is not None and signed.signer_address != source:
            raise SigningFailure(
                f"wallet signed as {signed.signer_address}, expected {source}",
                details={"source": source, "signer_address": signed.signer_address},
            )

        try:
            envelope = TransactionEnvelope.from_xdr(
                signed.signed_envelope_xdr, passphrase
            )
        except XDR_ERRORS as exc:
            raise SigningFailure(f"signed envelope could not be parsed: {exc}") from exc
        if envelope.hash_hex() != unsigned.hash_hex():
            raise SigningFailure("signed envelope does not match the prepared transaction")

        logger.info("submitting %s", envelope.hash_hex())
        return await self._chain.submit(envelope.to_xdr())

    # -----------------------------------------------------------------
    # Polling
    # -----------------------------------------------------------------

    def start_polling(self) -> None:
        """Refresh now and then every ``poll_interval_s``, in any state.

        Must be called from a running event loop.
        """
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop(), name="wallet-session-poll")

    async def stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def _poll_loop(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self._config.poll_interval_s)


def _unavailable(reason: str) -> WalletSession:
    return WalletSession(
        state=SessionState.UNAVAILABLE,
        last_error=reason,
        last_error_code=ErrorCode.UNAVAILABLE,
    )


def _with_mismatch(session: WalletSession, mismatch: str | None) -> WalletSession:
    if mismatch is None:
        return session
    return dataclasses.replace(
        session,
        last_error=mismatch,
        last_error_code=ErrorCode.NETWORK_MISMATCH,
    )
