"""
Response shapes for Soroban RPC and Horizon payloads.

The RPC client validates each ``result`` object against one of these
schemas before reading fields, so a malformed node response becomes a
failed result object with a diagnostic instead of a KeyError deep in
the parser.
"""

from __future__ import annotations

from typing import Any

import jsonschema  # type: ignore[import-untyped]

_LEDGER = {"type": ["integer", "string"]}

SIMULATE_RESULT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "error": {"type": "string"},
        "transactionData": {"type": "string"},
        "minResourceFee": {"type": ["string", "integer"], "pattern": r"^\d+$"},
        "results": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "xdr": {"type": "string"},
                    "auth": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["xdr"],
            },
        },
        "latestLedger": _LEDGER,
    },
}

SEND_RESULT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "status": {"enum": ["PENDING", "DUPLICATE", "TRY_AGAIN_LATER", "ERROR"]},
        "hash": {"type": "string"},
        "latestLedger": _LEDGER,
        "errorResultXdr": {"type": "string"},
    },
    "required": ["status"],
}

GET_TRANSACTION_RESULT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "status": {"enum": ["SUCCESS", "NOT_FOUND", "FAILED"]},
        "ledger": _LEDGER,
        "resultXdr": {"type": "string"},
        "returnValue": {"type": "string"},
    },
    "required": ["status"],
}

ACCOUNT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "sequence": {"type": "string", "pattern": r"^\d+$"},
    },
    "required": ["sequence"],
}


def validate(instance: Any, schema: dict[str, Any]) -> None:
    jsonschema.validate(instance=instance, schema=schema)


def shape_error(instance: Any, schema: dict[str, Any]) -> str | None:
    """Return a one-line description of the first schema violation, or None."""
    try:
        validate(instance, schema)
    except jsonschema.ValidationError as exc:
        path = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        return f"malformed response at {path}: {exc.message}"
    return None
