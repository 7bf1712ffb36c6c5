from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship

naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    # avoid constraint_name token to allow unnamed CheckConstraint
    "ck": "ck_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=naming_convention)


class Base(DeclarativeBase):
    metadata = metadata


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_visit_id() -> str:
    return str(uuid4())


class Visit(Base):
    __tablename__ = "visits"

    id = Column(String, primary_key=True, default=new_visit_id)
    patient_ref = Column(String, nullable=False)
    arrival_at = Column(DateTime, nullable=False, default=utc_now)
    arrival_path = Column(String, nullable=False, default="WALK_IN")
    status = Column(String, nullable=False, default="WAITING")
    notes = Column(Text)
    external_encounter_id = Column(String)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)

    assessments = relationship("EwsAssessment", back_populates="visit", lazy="raise")
    vitals = relationship("VitalsRecord", back_populates="visit", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "status in ('WAITING','IN_TRIAGE','ROOMED','DISCHARGED','LEFT_WITHOUT_BEING_SEEN')",
            name="ck_visits_status",
        ),
        CheckConstraint(
            "arrival_path in ('WALK_IN','EMS','TRAUMA_DIRECT','OTHER')",
            name="ck_visits_arrival_path",
        ),
        Index("ix_visits_status", "status"),
        Index("ix_visits_arrival_at", "arrival_at"),
    )


class EwsAssessment(Base):
    __tablename__ = "ews_assessments"

    id = Column(Integer, primary_key=True)
    visit_id = Column(String, ForeignKey("visits.id"), nullable=False)
    type = Column(String, nullable=False)
    score = Column(Integer)
    level = Column(String, nullable=False)
    flags = Column(JSON, nullable=False, default=list)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    visit = relationship("Visit", back_populates="assessments")

    __table_args__ = (
        CheckConstraint("type in ('PROVISIONAL','VERIFIED')", name="ck_ews_assessments_type"),
        CheckConstraint("level in ('LOW','MODERATE','HIGH','CRITICAL')", name="ck_ews_assessments_level"),
        Index("ix_ews_assessments_visit_created", "visit_id", "created_at"),
    )


class VitalsRecord(Base):
    __tablename__ = "vitals"

    id = Column(Integer, primary_key=True)
    visit_id = Column(String, ForeignKey("visits.id"), nullable=False)
    heart_rate = Column(Integer)
    bp_systolic = Column(Integer)
    bp_diastolic = Column(Integer)
    respirations = Column(Integer)
    temperature_f = Column(Float)
    spo2 = Column(Integer)
    weight_kg = Column(Float)
    recorded_by = Column(String, nullable=False)
    recorded_at = Column(DateTime, nullable=False, default=utc_now)

    visit = relationship("Visit", back_populates="vitals")

    __table_args__ = (Index("ix_vitals_visit_recorded", "visit_id", "recorded_at"),)


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True)
    event_ts = Column(DateTime, nullable=False, default=utc_now)
    actor_ref = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False)
    action = Column(String, nullable=False)
    field = Column(String, nullable=False)
    old_value = Column(Text)
    new_value = Column(Text)

    __table_args__ = (Index("ix_audit_log_entity", "entity_type", "entity_id"),)
