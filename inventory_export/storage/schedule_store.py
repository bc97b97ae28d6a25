"""
Persistence collaborators for scheduled exports.

The scheduler treats stores as durable and strongly consistent; every
read returns a fresh copy so no caller can mutate stored state in place.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from psycopg.types.json import Jsonb

from inventory_export.core.models import ScheduledExport
from inventory_export.observability.logger import get_logger
from inventory_export.utils.validation import sanitize_sql_identifier

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)


@runtime_checkable
class ScheduleStore(Protocol):
    def save(self, schedule: ScheduledExport) -> None:
        ...

    def load(self, schedule_id: str) -> ScheduledExport | None:
        ...

    def load_all(self) -> list[ScheduledExport]:
        ...

    def delete(self, schedule_id: str) -> bool:
        ...


class InMemoryScheduleStore:
    """Process-local store; state is lost on restart."""

    def __init__(self):
        self._schedules: dict[str, ScheduledExport] = {}
        self._lock = threading.Lock()

    def save(self, schedule: ScheduledExport) -> None:
        with self._lock:
            self._schedules[schedule.id] = schedule.model_copy(deep=True)

    def load(self, schedule_id: str) -> ScheduledExport | None:
        with self._lock:
            schedule = self._schedules.get(schedule_id)
            return schedule.model_copy(deep=True) if schedule else None

    def load_all(self) -> list[ScheduledExport]:
        with self._lock:
            schedules = [s.model_copy(deep=True) for s in self._schedules.values()]
        return sorted(schedules, key=lambda s: s.created_at)

    def delete(self, schedule_id: str) -> bool:
        with self._lock:
            return self._schedules.pop(schedule_id, None) is not None


class JsonFileScheduleStore:
    """
    Keeps every schedule in one JSON document.

    Each save rewrites the file atomically, so a crashed process leaves
    either the previous or the new state behind. Meant for single-process
    use such as the schedule CLI.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, dict]:
        if not self.path.is_file():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a schedule document")
        return data

    def _write(self, data: dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def save(self, schedule: ScheduledExport) -> None:
        with self._lock:
            data = self._read()
            data[schedule.id] = schedule.model_dump(mode="json")
            self._write(data)

    def load(self, schedule_id: str) -> ScheduledExport | None:
        with self._lock:
            payload = self._read().get(schedule_id)
        return ScheduledExport.model_validate(payload) if payload else None

    def load_all(self) -> list[ScheduledExport]:
        with self._lock:
            payloads = list(self._read().values())
        schedules = [ScheduledExport.model_validate(p) for p in payloads]
        return sorted(schedules, key=lambda s: s.created_at)

    def delete(self, schedule_id: str) -> bool:
        with self._lock:
            data = self._read()
            if data.pop(schedule_id, None) is None:
                return False
            self._write(data)
            return True


class PostgresScheduleStore:
    """
    Stores each schedule as a JSONB document keyed by id.

    Column formatters are callables and are not persisted; schedules
    reloaded from the database format cells by column type.
    """

    def __init__(self, pool: DatabaseConnectionPool, table_name: str = "export_schedules"):
        self.pool = pool
        self.table_name = sanitize_sql_identifier(table_name, "table_name")

    def create_schema(self) -> None:
        self.pool.execute_command(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table_name} (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                is_active BOOLEAN NOT NULL,
                next_run TIMESTAMPTZ,
                payload JSONB NOT NULL,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL
            )
            """
        )
        logger.info("Schedule table ready", extra={"table_name": self.table_name})

    def save(self, schedule: ScheduledExport) -> None:
        self.pool.execute_command(
            f"""
            INSERT INTO {self.table_name} (id, name, is_active, next_run, payload, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
                name = EXCLUDED.name,
                is_active = EXCLUDED.is_active,
                next_run = EXCLUDED.next_run,
                payload = EXCLUDED.payload,
                updated_at = EXCLUDED.updated_at
            """,
            (
                schedule.id,
                schedule.name,
                schedule.is_active,
                schedule.next_run,
                Jsonb(schedule.model_dump(mode="json")),
                schedule.created_at,
                schedule.updated_at,
            ),
        )

    def load(self, schedule_id: str) -> ScheduledExport | None:
        rows = self.pool.execute_query(
            f"SELECT payload FROM {self.table_name} WHERE id = %s",
            (schedule_id,),
        )
        if not rows:
            return None
        return ScheduledExport.model_validate(rows[0]["payload"])

    def load_all(self) -> list[ScheduledExport]:
        rows = self.pool.execute_query(
            f"SELECT payload FROM {self.table_name} ORDER BY created_at"
        )
        return [ScheduledExport.model_validate(row["payload"]) for row in rows]

    def delete(self, schedule_id: str) -> bool:
        return self.pool.execute_command(
            f"DELETE FROM {self.table_name} WHERE id = %s",
            (schedule_id,),
        ) > 0
