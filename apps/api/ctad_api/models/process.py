"""Process capture and contributor reputation models."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Float, Integer, String, event
from sqlalchemy.orm import object_session

from ctad_api.db.base import Base
from ctad_api.db.enums import ContributorTier, Platform
from ctad_api.errors import ImmutableRecordError


def _uuid() -> str:
    return str(uuid.uuid4())


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class ProcessDeclaration(Base):
    """One AI-assisted creative session submitted by the browser extension."""

    __tablename__ = "process_declarations"

    id = Column(String(36), primary_key=True, default=_uuid)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    platform = Column(
        Enum(Platform, native_enum=False, length=32, values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    session_started_at = Column(DateTime, nullable=False)
    session_ended_at = Column(DateTime, nullable=True)
    session_duration = Column(Integer, nullable=True)  # seconds
    iteration_count = Column(Integer, nullable=False, default=0)
    prompt_lineage = Column(JSON, nullable=False, default=list)
    rejected_outputs = Column(JSON, nullable=False, default=list)
    selected_output = Column(JSON, nullable=True)
    consent_for_training_data = Column(Boolean, default=False, nullable=False, index=True)
    consent_timestamp = Column(DateTime, nullable=True)
    consent_version = Column(String(50), nullable=True)
    contributor_id = Column(String(255), nullable=True, index=True)  # anonymous id
    contributor_expertise_tags = Column(JSON, nullable=False, default=list)


class Contributor(Base):
    """Cumulative reputation for an anonymous contributor id."""

    __tablename__ = "contributors"

    id = Column(String(36), primary_key=True, default=_uuid)
    anonymous_id = Column(String(255), nullable=False, unique=True, index=True)
    total_contributions = Column(Integer, default=0, nullable=False)
    total_points = Column(Integer, default=0, nullable=False)
    current_tier = Column(
        Enum(ContributorTier, native_enum=False, length=20, values_callable=_enum_values),
        default=ContributorTier.explorer,
        nullable=False,
    )
    taste_score = Column(Float, default=0.5, nullable=False)  # [0, 1]
    expertise_tags = Column(JSON, nullable=False, default=list)
    platform_stats = Column(JSON, nullable=False, default=dict)
    consent_version = Column(String(50), nullable=True)
    consent_timestamp = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False)  # optimistic lock
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}


@event.listens_for(ProcessDeclaration, "before_update")
def _reject_process_declaration_changes(mapper, connection, target):
    session = object_session(target)
    if session is not None and session.is_modified(target, include_collections=False):
        raise ImmutableRecordError(f"ProcessDeclaration {target.id} cannot be modified")
