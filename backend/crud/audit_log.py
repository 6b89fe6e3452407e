from sqlalchemy.orm import Session
from models.audit_log import AuditLog
from schemas.audit_log import AuditLogCreate


def record_audit_log(db: Session, log_entry: AuditLogCreate) -> AuditLog:
    """Add an audit row to the caller's transaction; the caller commits."""
    db_log_entry = AuditLog(**log_entry.model_dump())
    db.add(db_log_entry)
    return db_log_entry


def get_audit_logs(db: Session, table_name: str = None, record_id: str = None, skip: int = 0, limit: int = 100):
    query = db.query(AuditLog)
    if table_name:
        query = query.filter(AuditLog.table_name == table_name)
    if record_id:
        query = query.filter(AuditLog.record_id == record_id)
    return query.order_by(AuditLog.changed_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit).all()
