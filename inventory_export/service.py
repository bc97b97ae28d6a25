"""
Service wiring.

Builds the validator, exporter, retry queue, notifier, schedule store and
scheduler from ExportSettings and owns their lifecycle.
"""

from pathlib import Path

from inventory_export.config import ExportSettings, load_settings
from inventory_export.core.errors import ScheduleNotFoundError
from inventory_export.core.models import ScheduledExport
from inventory_export.core.rules import RuleConfigLoader, RuleRegistry, default_registry
from inventory_export.export import Exporter, RetryQueue
from inventory_export.notifications import EmailSender, Notifier, PushSender, WebhookPoster
from inventory_export.observability.logger import get_logger
from inventory_export.observability.metrics import start_metrics_server
from inventory_export.pipeline import ExportPipeline
from inventory_export.scheduling.scheduler import ExportScheduler
from inventory_export.sources.data_source import InMemoryDataSource, JsonFileDataSource
from inventory_export.storage.connection import DatabaseConnectionPool
from inventory_export.storage.schedule_store import (
    InMemoryScheduleStore,
    JsonFileScheduleStore,
    PostgresScheduleStore,
)
from inventory_export.utils.clock import Clock, utcnow
from inventory_export.validation import ExportValidator, IntegrityChecker

logger = get_logger(__name__)


def build_registry(rules_path: str | None) -> RuleRegistry:
    """Built-in rules, overridden per data type by an optional YAML file."""
    registry = default_registry()
    if rules_path:
        registry = registry.merged_with(RuleConfigLoader(rules_path).load_registry())
        logger.info("Loaded validation rules", extra={"rules_path": rules_path, "data_types": registry.data_types()})
    return registry


class ExportService:
    """
    Fully wired export orchestrator.

    Any collaborator can be injected; the rest are built from settings.
    The retry queue re-runs attempts through the exporter, and exhausted
    items are reported by the scheduler's notifier.
    """

    def __init__(
        self,
        settings: ExportSettings | None = None,
        data_source=None,
        store=None,
        notifier: Notifier | None = None,
        clock: Clock = utcnow,
        timer_pool=None,
        ticker=None,
    ):
        self.settings = settings or load_settings()
        self.clock = clock
        self.pool: DatabaseConnectionPool | None = None

        self.registry = build_registry(self.settings.rules_path)
        self.validator = ExportValidator(self.registry)
        self.integrity_checker = IntegrityChecker()

        self.exporter = Exporter(clock=clock)
        self.retry_queue = RetryQueue(options=self.settings.retry_options, clock=clock)
        self.retry_queue.bind(self.exporter.attempt)
        self.exporter.attach_retry_queue(self.retry_queue)

        self.notifier = notifier or self._build_notifier()
        self.store = store if store is not None else self._build_store()
        self.data_source = data_source if data_source is not None else self._build_data_source()

        self.pipeline = ExportPipeline(self.validator, self.exporter, self.integrity_checker)
        self.scheduler = ExportScheduler(
            store=self.store,
            data_source=self.data_source,
            exporter=self.exporter,
            notifier=self.notifier,
            validator=self.validator,
            retry_queue=self.retry_queue,
            clock=clock,
            timer_pool=timer_pool,
            ticker=ticker,
            default_timezone=self.settings.timezone,
            output_dir=self.settings.output_dir,
        )

    def _build_notifier(self) -> Notifier:
        settings = self.settings
        return Notifier(
            email_sender=EmailSender(
                host=settings.smtp_host,
                port=settings.smtp_port,
                sender=settings.smtp_sender,
                username=settings.smtp_user,
                password=settings.smtp_password,
                use_tls=settings.smtp_use_tls,
                timeout=settings.webhook_timeout_seconds,
            ),
            push_sender=PushSender(settings.push_endpoint, timeout=settings.webhook_timeout_seconds),
            webhook_poster=WebhookPoster(timeout=settings.webhook_timeout_seconds),
        )

    def _build_store(self):
        settings = self.settings
        if settings.database_configured:
            self.pool = DatabaseConnectionPool.from_settings(settings)
            self.pool.open()
            store = PostgresScheduleStore(self.pool)
            store.create_schema()
            logger.info("Using PostgreSQL schedule store", extra={"db_host": settings.db_host})
            return store
        if settings.schedules_file:
            logger.info("Using JSON file schedule store", extra={"path": settings.schedules_file})
            return JsonFileScheduleStore(settings.schedules_file)

        logger.warning("No schedule persistence configured, schedules are kept in memory")
        return InMemoryScheduleStore()

    def _build_data_source(self):
        if self.settings.data_dir:
            return JsonFileDataSource(Path(self.settings.data_dir))
        return InMemoryDataSource()

    def require_schedule(self, schedule_id: str) -> ScheduledExport:
        """
        Raises:
            ScheduleNotFoundError: If no schedule has this id
        """
        schedule = self.scheduler.get_schedule(schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError(schedule_id)
        return schedule

    def start(self, run_ticker: bool = True) -> None:
        if self.settings.metrics_port:
            start_metrics_server(self.settings.metrics_port)
            logger.info("Metrics server started", extra={"port": self.settings.metrics_port})
        self.scheduler.start(run_ticker=run_ticker)

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        if self.pool is not None:
            self.pool.close()
            self.pool = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
