"""
SQLAlchemy Core table definitions for the medical records schema.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
)

metadata = MetaData()


def _timestamps():
    return [
        Column("created_at", DateTime(timezone=True), server_default=func.now()),
        Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    ]


injuries = Table(
    "injuries", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("player_id", String(64), nullable=False, index=True),
    Column("team_id", String(64), index=True),
    Column("injury_date", Date, nullable=False),
    Column("return_date", Date),
    Column("injury_type", String(100), nullable=False),
    Column("injury_description", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("reported_by", String(64)),
    *_timestamps(),
)

treatments = Table(
    "treatments", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("injury_id", Integer, ForeignKey("injuries.id", ondelete="CASCADE"),
           nullable=False, index=True),
    Column("treatment_date", Date, nullable=False),
    Column("treatment_type", String(100), nullable=False),
    Column("treatment_description", Text),
    Column("treated_by", String(64)),
    Column("notes", Text),
    *_timestamps(),
)

rehab_plans = Table(
    "rehab_plans", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("injury_id", Integer, ForeignKey("injuries.id", ondelete="CASCADE"),
           nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date),
    Column("status", String(50), nullable=False, default="planned"),
    Column("created_by", String(64), nullable=False),
    *_timestamps(),
)

progress_notes = Table(
    "progress_notes", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("rehab_plan_id", Integer, ForeignKey("rehab_plans.id", ondelete="CASCADE"),
           nullable=False, index=True),
    Column("note_date", Date, nullable=False),
    Column("content", Text, nullable=False),
    Column("progress_status", String(50), nullable=False),
    Column("pain_level", Integer),
    Column("mobility_level", Integer),
    Column("strength_level", Integer),
    Column("created_by", String(64), nullable=False),
    *_timestamps(),
)

medical_reports = Table(
    "medical_reports", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("report_date", Date, nullable=False),
    Column("content", Text, nullable=False),
    Column("report_type", String(100), nullable=False),
    Column("confidentiality_level", String(50), nullable=False, default="standard"),
    Column("attachments", JSON),
    Column("created_by", String(64), nullable=False),
    *_timestamps(),
)
