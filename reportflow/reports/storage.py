"""Persistence models for report requests and their artifacts."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from reportflow.common.time import utcnow
from reportflow.reports.models import (
    ArtifactKind,
    ArtifactStatus,
    ArtifactView,
    RemoteDeletionState,
    RequestView,
)

if typ.TYPE_CHECKING:
    import enum

    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class Base(DeclarativeBase):
    """Base declarative class for orchestrator models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Force bound datetime values to UTC with tzinfo."""
        if value is None:
            return None
        if value.tzinfo is None:
            msg = "timestamps must be timezone aware"
            raise ValueError(msg)
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class ReportRequestRecord(Base):
    """A submitted report request; owns one artifact per kind."""

    __tablename__ = "report_requests"
    __table_args__ = (
        Index("ix_report_requests_created_at", "created_at"),
        Index("ix_report_requests_deleting_at", "deleting_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    submitter: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    deleting_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )

    artifacts: Mapped[list[ArtifactRecord]] = relationship(
        back_populates="request",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ArtifactRecord.kind",
    )

    def to_view(self) -> RequestView:
        """Return an immutable snapshot of the request and its artifacts."""
        return RequestView(
            id=self.id,
            submitter=self.submitter,
            description=self.description,
            created_at=self.created_at,
            updated_at=self.updated_at,
            artifacts=tuple(artifact.to_view() for artifact in self.artifacts),
            deleting=self.deleting_at is not None,
        )


class ArtifactRecord(Base):
    """One generated output (PDF or spreadsheet) belonging to a request."""

    __tablename__ = "report_artifacts"
    __table_args__ = (
        UniqueConstraint("request_id", "kind", name="uq_report_artifacts_kind"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    request_id: Mapped[str] = mapped_column(
        ForeignKey("report_requests.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[ArtifactKind] = mapped_column(
        _enum_column(ArtifactKind), nullable=False
    )
    status: Mapped[ArtifactStatus] = mapped_column(
        _enum_column(ArtifactStatus), default=ArtifactStatus.PENDING, nullable=False
    )
    file_id: Mapped[str | None] = mapped_column(String(128), default=None)
    file_location: Mapped[str | None] = mapped_column(String(512), default=None)
    file_size: Mapped[int | None] = mapped_column(BigInteger(), default=None)
    failure_reason: Mapped[str | None] = mapped_column(Text(), default=None)
    remote_deletion: Mapped[RemoteDeletionState] = mapped_column(
        _enum_column(RemoteDeletionState),
        default=RemoteDeletionState.NOT_REQUESTED,
        nullable=False,
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )

    request: Mapped[ReportRequestRecord] = relationship(back_populates="artifacts")

    def to_view(self) -> ArtifactView:
        """Return an immutable snapshot of the artifact."""
        return ArtifactView(
            kind=self.kind,
            status=self.status,
            file_id=self.file_id,
            file_location=self.file_location,
            file_size=self.file_size,
            failure_reason=self.failure_reason,
            remote_deletion=self.remote_deletion,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


async def init_report_storage(engine: AsyncEngine) -> None:
    """Create the report tables if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
