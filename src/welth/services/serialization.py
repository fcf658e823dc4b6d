"""Decimal → float conversion at the transport boundary."""

from decimal import Decimal
from typing import Any

from sqlalchemy import inspect

MONEY_FIELDS = ("balance", "amount")


def to_dict(row: Any) -> dict[str, Any]:
    """Column values of an ORM row as a plain dict."""
    return {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}


def serialize_money(obj: dict[str, Any]) -> dict[str, Any]:
    """Copy of `obj` with money fields as floats.

    Lossy by nature: values survive within float precision only.
    """
    serialized = dict(obj)
    for name in MONEY_FIELDS:
        value = serialized.get(name)
        if isinstance(value, Decimal):
            serialized[name] = float(value)
    return serialized
