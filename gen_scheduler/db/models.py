"""Database models for the generation scheduler."""

import enum
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gen_scheduler.db.session import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    # Persist the lowercase values, not the member names
    return [member.value for member in enum_cls]


class MasterStatus(str, enum.Enum):
    """Lifecycle status of a generation campaign (masters.generate_status)."""

    BELUM_SIAP = "belum_siap"  # not ready, needs sync
    BELUM_MULAI = "belum_mulai"  # ready, not started
    MENUNGGU = "menunggu"  # ready, waiting for the next orchestration step
    SEDANG_JALAN = "sedang_jalan"  # running
    SEDANG_PROSES = "sedang_proses"  # running (set by the orchestrator)
    SELESAI = "selesai"
    ERROR = "error"


class DocumentKind(str, enum.Enum):
    """Kinds of generated documents."""

    PROTA = "prota"
    PROSEM = "prosem"
    RPM = "rpm"
    LKPD = "lkpd"

    @property
    def chapter_scoped(self) -> bool:
        return self in (DocumentKind.RPM, DocumentKind.LKPD)


class GenerationState(str, enum.Enum):
    """Status of a single document artifact."""

    PENDING = "pending"
    GENERATING = "generating"
    GENERATING_AI = "generating_ai"
    DONE = "done"
    ERROR = "error"


class Master(Base):
    """One generation campaign (one subject and class)."""

    __tablename__ = "masters"

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    nama: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    generate_status: Mapped[MasterStatus] = mapped_column(
        Enum(MasterStatus, name="generate_status", values_callable=_enum_values),
        default=MasterStatus.BELUM_SIAP,
        index=True,
    )
    generate_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
    percobaan: Mapped[int] = mapped_column(Integer, default=0)

    # Aggregates maintained by sync_progress
    dokumen_total: Mapped[int] = mapped_column(Integer, default=0)
    dokumen_selesai: Mapped[int] = mapped_column(Integer, default=0)
    dokumen_error: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    babs: Mapped[list["Chapter"]] = relationship(
        "Chapter",
        back_populates="master",
        cascade="all, delete-orphan",
        order_by="Chapter.nomor",
    )
    generation_statuses: Mapped[list["GenerationStatus"]] = relationship(
        "GenerationStatus", back_populates="master", cascade="all, delete-orphan"
    )


class Chapter(Base):
    """An ordered chapter (bab) of a master."""

    __tablename__ = "babs"
    __table_args__ = (UniqueConstraint("master_id", "nomor", name="uq_babs_master_nomor"),)

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    master_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("masters.id", ondelete="CASCADE"), index=True
    )
    nomor: Mapped[int] = mapped_column(Integer)
    judul: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    master: Mapped["Master"] = relationship("Master", back_populates="babs")


class GenerationStatus(Base):
    """Progress of one document artifact, optionally scoped to a chapter."""

    __tablename__ = "generation_status"
    __table_args__ = (
        UniqueConstraint("master_id", "jenis", "bab_id", name="uq_generation_status_master_jenis_bab"),
        # NULL bab_id rows (prota, prosem) are unique per master
        Index(
            "uq_generation_status_master_jenis_no_bab",
            "master_id",
            "jenis",
            unique=True,
            postgresql_where=text("bab_id IS NULL"),
            sqlite_where=text("bab_id IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    master_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("masters.id", ondelete="CASCADE"), index=True
    )
    jenis: Mapped[DocumentKind] = mapped_column(
        Enum(DocumentKind, name="document_kind", values_callable=_enum_values)
    )
    bab_id: Mapped[Optional[str]] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("babs.id", ondelete="CASCADE"), nullable=True
    )
    status: Mapped[GenerationState] = mapped_column(
        Enum(GenerationState, name="generation_state", values_callable=_enum_values),
        default=GenerationState.PENDING,
    )
    current_step: Mapped[int] = mapped_column(Integer, default=0)
    total_steps: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    file_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    master: Mapped["Master"] = relationship("Master", back_populates="generation_statuses")
    bab: Mapped[Optional["Chapter"]] = relationship("Chapter")
