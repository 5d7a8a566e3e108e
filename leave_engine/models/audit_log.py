"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Text, Index, event
from leave_engine.db.base import Base


class AuditEntry(Base):
    __tablename__ = "audit_entries"

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(50), nullable=False)  # "leave_request", "leave_balance", "leave_type"
    entity_id = Column(Integer, nullable=False)
    actor_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    action = Column(String(50), nullable=False)  # e.g. "SUBMIT", "APPROVE", "COMMIT_USAGE"
    before_state = Column(JSON, nullable=True)
    after_state = Column(JSON, nullable=True)
    comment = Column(Text, nullable=True)
    # Set explicitly by the audit service to avoid SQLite server_default quirks
    timestamp = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_audit_entries_entity", "entity_type", "entity_id"),
    )


@event.listens_for(AuditEntry, "before_update")
def _forbid_audit_update(mapper, connection, target):
    raise RuntimeError("Audit entries are append-only")


@event.listens_for(AuditEntry, "before_delete")
def _forbid_audit_delete(mapper, connection, target):
    raise RuntimeError("Audit entries are append-only")
