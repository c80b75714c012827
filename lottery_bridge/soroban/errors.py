"""
Soroban status mapping — translates network statuses to ErrorCode.

Keeps the mapping coarse and conservative. Unknown statuses map to
SUBMISSION_FAILED rather than guessing.

sendTransaction statuses:
    - PENDING: accepted, awaiting inclusion
    - DUPLICATE: already known to the node, awaiting inclusion
    - TRY_AGAIN_LATER: not accepted (node busy) — we don't auto-retry
    - ERROR: rejected (bad sequence, bad auth, insufficient fee, ...)

getTransaction statuses:
    - SUCCESS: included and applied
    - FAILED: included, contract or host failure
    - NOT_FOUND: not (yet) in the node's retention window
"""

from __future__ import annotations

from lottery_bridge.errors import ErrorCode

_SEND_STATUS_MAP: dict[str, ErrorCode] = {
    "ERROR": ErrorCode.REJECTED,
    "TRY_AGAIN_LATER": ErrorCode.SUBMISSION_FAILED,
    "SERVER_ERROR": ErrorCode.BACKEND_UNAVAILABLE,
}


def classify_send_status(status: str | None) -> ErrorCode:
    """Map a rejected sendTransaction status to an ErrorCode.

    Callers should check ``SubmissionResult.accepted`` first; accepted
    statuses passed here classify as SUBMISSION_FAILED.
    """
    if status is None:
        return ErrorCode.SUBMISSION_FAILED
    return _SEND_STATUS_MAP.get(status, ErrorCode.SUBMISSION_FAILED)


def classify_transaction_status(status: str | None) -> ErrorCode:
    """Map a non-SUCCESS getTransaction status to an ErrorCode."""
    if status == "FAILED":
        return ErrorCode.REJECTED
    if status == "NOT_FOUND":
        return ErrorCode.TIMEOUT
    if status == "SERVER_ERROR":
        return ErrorCode.BACKEND_UNAVAILABLE
    return ErrorCode.SUBMISSION_FAILED


def classify_connection_error() -> ErrorCode:
    """Error code for a failure to reach the RPC or Horizon endpoint.

    The transport error itself carries no further category: the node
    did not answer, whatever the cause.
    """
    return ErrorCode.BACKEND_UNAVAILABLE
