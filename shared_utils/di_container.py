"""
Dependency injection container for managing application dependencies.
Centralizes engine, adapter and service creation and lifecycle management.
"""

from typing import Optional
import logging

from shared_utils.config_loader import get_settings
from shared_utils.constants import LogScope


logger = logging.getLogger(__name__)


class DIContainer:
    """Singleton dependency injection container."""

    _instance: Optional['DIContainer'] = None
    _engine: Optional[object] = None
    _session_factory: Optional[object] = None

    # adapter singletons
    _meeting_store: Optional[object] = None
    _evaluation_store: Optional[object] = None
    _report_store: Optional[object] = None

    # service singletons
    _meeting_service: Optional[object] = None
    _evaluation_service: Optional[object] = None
    _report_service: Optional[object] = None
    _export_service: Optional[object] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reset(self):
        """Reset container (useful for testing)."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None
        self._meeting_store = None
        self._evaluation_store = None
        self._report_store = None
        self._meeting_service = None
        self._evaluation_service = None
        self._report_service = None
        self._export_service = None

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def get_engine(self):
        """Get or create the shared SQLAlchemy engine (lazy singleton).

        Raises:
            RuntimeError: If the engine cannot be created from DATABASE_URI.
        """
        if self._engine is None:
            from adapters.sql_schema import build_engine

            settings = get_settings()
            logger.info(
                "Initializing database engine",
                extra={"scope": LogScope.CONFIG}
            )
            try:
                self._engine = build_engine(settings.database_uri, echo=settings.database_echo)
            except Exception as e:
                logger.error(
                    "Failed to initialize database engine",
                    extra={"scope": LogScope.CONFIG, "error": str(e)}
                )
                raise RuntimeError(f"Database engine initialization failed: {e}") from e
        return self._engine

    def get_session_factory(self):
        if self._session_factory is None:
            from adapters.sql_schema import build_session_factory

            self._session_factory = build_session_factory(self.get_engine())
        return self._session_factory

    def init_storage(self, reset: bool = False) -> None:
        """Create the schema (drop it first when ``reset``)."""
        from adapters.sql_schema import create_schema, drop_schema

        engine = self.get_engine()
        if reset:
            drop_schema(engine)
        create_schema(engine)

    # ------------------------------------------------------------------
    # Adapter accessors
    # ------------------------------------------------------------------

    def get_meeting_store(self):
        """Get or create SqlMeetingStoreAdapter (lazy singleton)."""
        if self._meeting_store is None:
            from adapters.sql_meeting_store import SqlMeetingStoreAdapter

            self._meeting_store = SqlMeetingStoreAdapter(self.get_session_factory())
            logger.info("Initialized SqlMeetingStoreAdapter")
        return self._meeting_store

    def get_evaluation_store(self):
        """Get or create SqlEvaluationStoreAdapter (lazy singleton)."""
        if self._evaluation_store is None:
            from adapters.sql_evaluation_store import SqlEvaluationStoreAdapter

            self._evaluation_store = SqlEvaluationStoreAdapter(self.get_session_factory())
            logger.info("Initialized SqlEvaluationStoreAdapter")
        return self._evaluation_store

    def get_report_store(self):
        """Get or create SqlReportStoreAdapter (lazy singleton)."""
        if self._report_store is None:
            from adapters.sql_report_store import SqlReportStoreAdapter

            self._report_store = SqlReportStoreAdapter(self.get_session_factory())
            logger.info("Initialized SqlReportStoreAdapter")
        return self._report_store

    # ------------------------------------------------------------------
    # Service accessors
    # ------------------------------------------------------------------

    def get_meeting_service(self):
        """Get or create MeetingService (lazy singleton)."""
        if self._meeting_service is None:
            from services.meeting_service import MeetingService

            settings = get_settings()
            self._meeting_service = MeetingService(
                meeting_store=self.get_meeting_store(),
                evaluation_store=self.get_evaluation_store(),
                recent_window_days=settings.recent_meeting_window_days,
                recent_limit=settings.recent_meeting_limit,
            )
            logger.info("Initialized MeetingService")
        return self._meeting_service

    def get_evaluation_service(self):
        """Get or create EvaluationService (lazy singleton)."""
        if self._evaluation_service is None:
            from services.evaluation_service import EvaluationService

            self._evaluation_service = EvaluationService(
                evaluation_store=self.get_evaluation_store(),
                meeting_store=self.get_meeting_store(),
                active_shape=get_settings().evaluation_shape,
            )
            logger.info("Initialized EvaluationService")
        return self._evaluation_service

    def get_report_service(self):
        """Get or create ReportService (lazy singleton)."""
        if self._report_service is None:
            from services.report_service import ReportService

            self._report_service = ReportService(
                report_store=self.get_report_store(),
                meeting_store=self.get_meeting_store(),
            )
            logger.info("Initialized ReportService")
        return self._report_service

    def get_export_service(self):
        """Get or create ExportService (lazy singleton)."""
        if self._export_service is None:
            from services.export_service import ExportService

            self._export_service = ExportService(
                meeting_store=self.get_meeting_store(),
                evaluation_store=self.get_evaluation_store(),
            )
            logger.info("Initialized ExportService")
        return self._export_service


# Global singleton instance
_container = DIContainer()


def get_di_container() -> DIContainer:
    """Get global DI container instance."""
    return _container
