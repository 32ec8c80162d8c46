# bmsstore/api/utils/http.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import jsonify, request


def json_error(message: str, status: int = 400):
    return jsonify({"ok": False, "error": message}), status


def get_payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return request.form or {}
    # a JSON array or scalar body carries no fields
    return data if isinstance(data, dict) else {}


def to_decimal(val, field: str = "") -> Decimal:
    try:
        number = Decimal(str(val))
    except (InvalidOperation, ValueError):
        raise InvalidOperation(f"Invalid value for {field or 'number'}")
    if not number.is_finite():
        raise InvalidOperation(f"Invalid value for {field or 'number'}")
    return number


def to_bool(val, default: bool = False) -> bool:
    if val is None:
        return default
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in ("1", "true", "t", "yes", "y", "on")


def to_int(val, default=None):
    try:
        return int(val)
    except (TypeError, ValueError):
        return default


def money(val) -> float | None:
    return float(val) if val is not None else None


def iso(val) -> str | None:
    return val.isoformat() if val else None
