"""
Data source collaborators supplying the records a scheduled export operates on.
"""

import json
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from inventory_export.observability.logger import get_logger
from inventory_export.utils.records import get_nested_value

logger = get_logger(__name__)


@runtime_checkable
class DataSource(Protocol):
    """Pure read of the records of one data type."""

    def fetch(self, data_type: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        ...


def apply_filters(records: list[dict[str, Any]], filters: dict[str, Any] | None) -> list[dict[str, Any]]:
    """
    Keep records whose fields equal every filter value.

    A list filter value matches any of its elements. Keys are dotted paths.
    """
    if not filters:
        return list(records)

    def matches(record: dict[str, Any]) -> bool:
        for path, expected in filters.items():
            actual = get_nested_value(record, path)
            if isinstance(expected, (list, tuple, set)):
                if actual not in expected:
                    return False
            elif actual != expected:
                return False
        return True

    return [record for record in records if matches(record)]


class InMemoryDataSource:
    """Records held in memory, grouped by data type."""

    def __init__(self, records: dict[str, list[dict[str, Any]]] | None = None):
        self._records = {k: list(v) for k, v in (records or {}).items()}
        self._lock = threading.Lock()

    def set_records(self, data_type: str, records: list[dict[str, Any]]) -> None:
        with self._lock:
            self._records[data_type] = list(records)

    def fetch(self, data_type: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        with self._lock:
            if data_type not in self._records:
                raise LookupError(f"Unsupported data type: {data_type}")
            records = list(self._records[data_type])
        return apply_filters(records, filters)


class JsonFileDataSource:
    """
    Reads ``<data_type>.json`` (an array of objects) from a directory.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def fetch(self, data_type: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        path = self.directory / f"{data_type}.json"
        if not path.is_file():
            raise LookupError(f"Unsupported data type: {data_type} (no {path.name} in {self.directory})")

        with open(path, encoding="utf-8") as f:
            records = json.load(f)
        if not isinstance(records, list):
            raise ValueError(f"{path} must contain a JSON array of records")

        logger.debug("Loaded records", extra={"data_type": data_type, "record_count": len(records)})
        return apply_filters(records, filters)


class CallableDataSource:
    """Adapts a plain function ``(data_type, filters) -> records``."""

    def __init__(self, func: Callable[[str, dict[str, Any]], list[dict[str, Any]]]):
        self._func = func

    def fetch(self, data_type: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return list(self._func(data_type, filters or {}))
