"""Lazily-constructed DynamoDB table handle shared by the process.

Import using: from app.DB.dynamodb import get_table
"""
from __future__ import annotations

import threading
from typing import Any, Optional

import boto3

from app.Core.config import get_settings

_table: Optional[Any] = None
_lock = threading.Lock()


def get_table() -> Any:
    global _table
    if _table is not None:
        return _table
    with _lock:
        if _table is None:
            settings = get_settings()
            resource = boto3.resource("dynamodb", region_name=settings.aws_region)
            _table = resource.Table(settings.table_name)
    return _table


def set_table(table: Any) -> None:
    """Install a table handle (tests use an in-memory fake)."""
    global _table
    _table = table


def reset_table() -> None:
    global _table
    _table = None


__all__ = ["get_table", "set_table", "reset_table"]
