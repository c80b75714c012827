"""
Error taxonomy for the lottery client.

Every failure the client can report maps to one ``ErrorCode``. Layers
that raise use the ``LotteryClientError`` hierarchy below; layers that
return results (``ActionOutcome``) carry the same codes as strings.

Recoverable session conditions (``UNAVAILABLE``, ``UNAUTHORIZED``,
``NETWORK_MISMATCH``) are recorded on the session, not raised, except
when a caller tries to sign while in one of them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Machine-readable failure categories."""

    VALIDATION = "VALIDATION"
    ACTION_IN_PROGRESS = "ACTION_IN_PROGRESS"
    NOT_CONNECTED = "NOT_CONNECTED"
    NETWORK_MISMATCH = "NETWORK_MISMATCH"
    UNAVAILABLE = "UNAVAILABLE"
    UNAUTHORIZED = "UNAUTHORIZED"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    SIMULATION_FAILED = "SIMULATION_FAILED"
    SIGNING_FAILED = "SIGNING_FAILED"
    SUBMISSION_FAILED = "SUBMISSION_FAILED"
    REJECTED = "REJECTED"
    DECODE_FAILED = "DECODE_FAILED"
    DECODE_WARNING = "DECODE_WARNING"
    BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"


class LotteryClientError(Exception):
    """Base class for every error raised by the client.

    Args:
        message: Human-readable description.
        error_code: Failure category.
        details: Optional structured context for diagnostics.
    """

    default_code = ErrorCode.REJECTED

    def __init__(
        self,
        message: str,
        *,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}


class ValidationError(LotteryClientError):
    """Arguments rejected locally, before any network call."""

    default_code = ErrorCode.VALIDATION


class ActionInProgress(LotteryClientError):
    """Another state-changing action holds the session's processing gate."""

    default_code = ErrorCode.ACTION_IN_PROGRESS


class NotConnected(LotteryClientError):
    """The session has no authorized address or network passphrase."""

    default_code = ErrorCode.NOT_CONNECTED


class NetworkMismatch(LotteryClientError):
    """The wallet is on a different network than the client."""

    default_code = ErrorCode.NETWORK_MISMATCH


class AccountNotFound(LotteryClientError):
    """The source account has no on-chain presence (e.g. unfunded)."""

    default_code = ErrorCode.ACCOUNT_NOT_FOUND


class SimulationFailure(LotteryClientError):
    """The dry-run was rejected by the contract or the RPC."""

    default_code = ErrorCode.SIMULATION_FAILED


class SigningFailure(LotteryClientError):
    """The wallet refused or failed to sign the envelope."""

    default_code = ErrorCode.SIGNING_FAILED


class SubmissionFailure(LotteryClientError):
    """The network did not accept the signed envelope."""

    default_code = ErrorCode.SUBMISSION_FAILED


class DecodeFailure(LotteryClientError):
    """A required field of a contract return value could not be decoded."""

    default_code = ErrorCode.DECODE_FAILED


class ChainUnavailable(LotteryClientError):
    """The RPC or account endpoint could not be reached."""

    default_code = ErrorCode.BACKEND_UNAVAILABLE
