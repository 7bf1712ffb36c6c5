"""Visits, EWS assessments, vitals and audit log"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_triage_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "visits",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("patient_ref", sa.String(), nullable=False),
        sa.Column("arrival_at", sa.DateTime(), nullable=False),
        sa.Column("arrival_path", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("external_encounter_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_visits"),
        sa.CheckConstraint(
            "status in ('WAITING','IN_TRIAGE','ROOMED','DISCHARGED','LEFT_WITHOUT_BEING_SEEN')",
            name="ck_visits_status",
        ),
        sa.CheckConstraint(
            "arrival_path in ('WALK_IN','EMS','TRAUMA_DIRECT','OTHER')",
            name="ck_visits_arrival_path",
        ),
    )
    op.create_index("ix_visits_status", "visits", ["status"], unique=False)
    op.create_index("ix_visits_arrival_at", "visits", ["arrival_at"], unique=False)

    op.create_table(
        "ews_assessments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("visit_id", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("level", sa.String(), nullable=False),
        sa.Column("flags", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_ews_assessments"),
        sa.ForeignKeyConstraint(
            ["visit_id"], ["visits.id"], name="fk_ews_assessments_visit_id_visits"
        ),
        sa.CheckConstraint("type in ('PROVISIONAL','VERIFIED')", name="ck_ews_assessments_type"),
        sa.CheckConstraint(
            "level in ('LOW','MODERATE','HIGH','CRITICAL')", name="ck_ews_assessments_level"
        ),
    )
    op.create_index(
        "ix_ews_assessments_visit_created", "ews_assessments", ["visit_id", "created_at"], unique=False
    )

    op.create_table(
        "vitals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("visit_id", sa.String(), nullable=False),
        sa.Column("heart_rate", sa.Integer(), nullable=True),
        sa.Column("bp_systolic", sa.Integer(), nullable=True),
        sa.Column("bp_diastolic", sa.Integer(), nullable=True),
        sa.Column("respirations", sa.Integer(), nullable=True),
        sa.Column("temperature_f", sa.Float(), nullable=True),
        sa.Column("spo2", sa.Integer(), nullable=True),
        sa.Column("weight_kg", sa.Float(), nullable=True),
        sa.Column("recorded_by", sa.String(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_vitals"),
        sa.ForeignKeyConstraint(["visit_id"], ["visits.id"], name="fk_vitals_visit_id_visits"),
    )
    op.create_index("ix_vitals_visit_recorded", "vitals", ["visit_id", "recorded_at"], unique=False)

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_ts", sa.DateTime(), nullable=False),
        sa.Column("actor_ref", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("field", sa.String(), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_audit_log"),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_log_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_vitals_visit_recorded", table_name="vitals")
    op.drop_table("vitals")
    op.drop_index("ix_ews_assessments_visit_created", table_name="ews_assessments")
    op.drop_table("ews_assessments")
    op.drop_index("ix_visits_arrival_at", table_name="visits")
    op.drop_index("ix_visits_status", table_name="visits")
    op.drop_table("visits")
