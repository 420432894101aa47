"""Persistence model for files produced by a generator service."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from reportflow.common.time import utcnow
from reportflow.generators.models import GeneratorDescriptor
from reportflow.reports.storage import UTCDateTime

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


class GeneratorBase(DeclarativeBase):
    """Declarative base for generator-owned tables.

    Kept apart from the orchestrator metadata because each generator owns
    its own database.
    """


class GeneratedFile(GeneratorBase):
    """A rendered file held in the blob store."""

    __tablename__ = "generated_files"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    kind: Mapped[str] = mapped_column(String(32))
    request_id: Mapped[str] = mapped_column(String(64))
    submitter: Mapped[str] = mapped_column(Text)
    description: Mapped[str] = mapped_column(Text)
    file_location: Mapped[str] = mapped_column(Text)
    file_size: Mapped[int] = mapped_column(BigInteger, default=0)
    generated_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)

    __table_args__ = (Index("ix_generated_files_request_id", "request_id"),)

    def to_descriptor(self) -> GeneratorDescriptor:
        """Describe the stored file on the wire."""
        return GeneratorDescriptor(
            request_id=self.request_id,
            file_id=self.id,
            file_location=self.file_location,
            file_size=self.file_size,
        )


async def init_generator_storage(engine: AsyncEngine) -> None:
    """Create the generator tables if they do not already exist."""
    async with engine.begin() as conn:
        await conn.run_sync(GeneratorBase.metadata.create_all)
