"""All ORM models. These map 1:1 to the Pydantic types but are SQLAlchemy models.

Tables: workflows, workflow_runs
"""

from sqlalchemy import Column, String, DateTime, JSON, Boolean, Text, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase
from datetime import datetime, timezone


class Base(DeclarativeBase):
    pass


class WorkflowModel(Base):
    __tablename__ = "workflows"
    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    trigger_path = Column(String(255), nullable=False, unique=True)
    steps = Column(JSON, nullable=False)             # serialized step list
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("ix_workflows_trigger_path", "trigger_path"),)


class WorkflowRunModel(Base):
    __tablename__ = "workflow_runs"
    id = Column(String(255), primary_key=True)
    workflow_id = Column(
        String(255), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(String(50), nullable=False)      # RunStatus value
    ctx = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    error_details = Column(JSON, nullable=True)
    started_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_workflow_runs_status", "status"),)
