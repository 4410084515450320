"""
Relational schema and engine setup (SQLAlchemy 2.0).

Five logical tables: meetings, evaluations and one per report kind. List-valued
fields live in ``*_json`` TEXT columns; every child row cascades on meeting
deletion.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Engine,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from shared_utils.constants import DatabaseConfig, EvaluationShape, LogScope
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)

_NAME = DatabaseConfig.NAME_MAX_LENGTH


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class MeetingRow(Base):
    __tablename__ = DatabaseConfig.MEETINGS_TABLE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(_NAME), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)


def _meeting_fk() -> ForeignKey:
    return ForeignKey(f"{DatabaseConfig.MEETINGS_TABLE}.id", ondelete="CASCADE")


class EvaluationRow(Base):
    __tablename__ = DatabaseConfig.EVALUATIONS_TABLE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    meeting_id: Mapped[int] = mapped_column(_meeting_fk(), nullable=False, index=True)
    shape: Mapped[str] = mapped_column(String(16), default=EvaluationShape.TAGGED.value, nullable=False)
    evaluator_name: Mapped[str] = mapped_column(String(_NAME), nullable=False)
    speaker_name: Mapped[str] = mapped_column(String(_NAME), nullable=False)
    speech_type: Mapped[str] = mapped_column(String(50), nullable=False)
    commend_tags_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    recommend_tags_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    challenge_tags_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    content_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    delivery_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    language_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    time_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    overall_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    strengths: Mapped[str] = mapped_column(Text, default="", nullable=False)
    improvements: Mapped[str] = mapped_column(Text, default="", nullable=False)
    comments: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)


class _ReportColumns:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reporter_name: Mapped[str] = mapped_column(String(_NAME), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


class AhUmReportRow(_ReportColumns, Base):
    __tablename__ = DatabaseConfig.AH_UM_TABLE

    meeting_id: Mapped[int] = mapped_column(_meeting_fk(), nullable=False, index=True)
    entries_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)


class GrammarianReportRow(_ReportColumns, Base):
    __tablename__ = DatabaseConfig.GRAMMARIAN_TABLE

    meeting_id: Mapped[int] = mapped_column(_meeting_fk(), nullable=False, index=True)
    word_of_day: Mapped[str] = mapped_column(String(_NAME), default="", nullable=False)
    word_of_day_definition: Mapped[str] = mapped_column(Text, default="", nullable=False)
    entries_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)


class TimerReportRow(_ReportColumns, Base):
    __tablename__ = DatabaseConfig.TIMER_TABLE

    meeting_id: Mapped[int] = mapped_column(_meeting_fk(), nullable=False, index=True)
    meeting_start: Mapped[str] = mapped_column(String(32), default="", nullable=False)
    meeting_end: Mapped[str] = mapped_column(String(32), default="", nullable=False)
    entries_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)


class GeneralEvaluatorReportRow(_ReportColumns, Base):
    __tablename__ = DatabaseConfig.GENERAL_EVALUATOR_TABLE

    meeting_id: Mapped[int] = mapped_column(_meeting_fk(), nullable=False, index=True)
    evaluator_feedbacks_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    functionary_feedbacks_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    meeting_highlights: Mapped[str] = mapped_column(Text, default="", nullable=False)
    meeting_improvements: Mapped[str] = mapped_column(Text, default="", nullable=False)
    overall_comments: Mapped[str] = mapped_column(Text, default="", nullable=False)


# ---------------------------------------------------------------------------
# Engine / session helpers
# ---------------------------------------------------------------------------


def build_engine(database_uri: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite gets FK enforcement and thread-safe connections."""
    kwargs: dict = {"echo": echo, "future": True}
    is_sqlite = database_uri.startswith("sqlite")
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_uri in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(database_uri, **kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.info("sql_engine_created", dialect=engine.dialect.name)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(engine)
    logger.info("sql_schema_ready", tables=sorted(Base.metadata.tables.keys()))


def drop_schema(engine: Engine) -> None:
    Base.metadata.drop_all(engine)
    logger.warning("sql_schema_dropped")
