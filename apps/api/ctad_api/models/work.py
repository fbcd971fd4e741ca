"""Work, declaration, revision and audio reference models."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, event
from sqlalchemy.orm import object_session, relationship

from ctad_api.db.base import Base
from ctad_api.errors import ImmutableRecordError


def _uuid() -> str:
    return str(uuid.uuid4())


class Work(Base):
    """A creative artifact; owns exactly one declaration."""

    __tablename__ = "works"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(500), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    declaration = relationship(
        "Declaration",
        back_populates="work",
        uselist=False,
        cascade="all, delete-orphan",
    )


class Declaration(Base):
    """Creation-time authorship claim. Never updated after insert."""

    __tablename__ = "declarations"

    id = Column(String(36), primary_key=True, default=_uuid)
    work_id = Column(String(36), ForeignKey("works.id"), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    intent = Column(Text, nullable=False)
    tools = Column(Text, nullable=False)
    ai_used = Column(Boolean, default=False, nullable=False)
    contributors = Column(Text, nullable=True)

    # Relationships
    work = relationship("Work", back_populates="declaration")
    revisions = relationship(
        "DeclarationRevision",
        back_populates="declaration",
        order_by=lambda: [DeclarationRevision.created_at, DeclarationRevision.sequence],
        cascade="all, delete-orphan",
    )
    audio_refs = relationship(
        "AudioReference",
        back_populates="declaration",
        order_by=lambda: [AudioReference.created_at, AudioReference.position],
        cascade="all, delete-orphan",
    )


class DeclarationRevision(Base):
    """Append-only amendment. NULL override columns mean "unchanged"."""

    __tablename__ = "declaration_revisions"

    id = Column(String(36), primary_key=True, default=_uuid)
    declaration_id = Column(String(36), ForeignKey("declarations.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)  # 1-based, per declaration
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    change_note = Column(Text, nullable=False)
    intent = Column(Text, nullable=True)
    tools = Column(Text, nullable=True)
    ai_used = Column(Boolean, nullable=True)
    contributors = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("declaration_id", "sequence", name="uq_revision_declaration_sequence"),
    )

    # Relationships
    declaration = relationship("Declaration", back_populates="revisions")


class AudioReference(Base):
    """SHA-256 binding between a declaration and an audio file that is not stored."""

    __tablename__ = "audio_references"

    id = Column(String(36), primary_key=True, default=_uuid)
    declaration_id = Column(String(36), ForeignKey("declarations.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)  # upload order within the batch
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    file_name = Column(String(500), nullable=False)
    sha256 = Column(String(64), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Relationships
    declaration = relationship("Declaration", back_populates="audio_refs")


def _reject_column_changes(mapper, connection, target):
    session = object_session(target)
    if session is not None and session.is_modified(target, include_collections=False):
        raise ImmutableRecordError(
            f"{type(target).__name__} {target.id} is append-only and cannot be modified"
        )


for _model in (Work, Declaration, DeclarationRevision, AudioReference):
    event.listen(_model, "before_update", _reject_column_changes)
