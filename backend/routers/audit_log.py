from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from crud.audit_log import get_audit_logs
from schemas.audit_log import AuditLog
from utils.auth_utils import require_accounting

router = APIRouter(prefix="/audit-logs", tags=["Audit Log"])


@router.get("/", response_model=List[AuditLog])
def read_audit_logs(
    table_name: Optional[str] = None,
    record_id: Optional[str] = None,
    skip: int = 0,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user: dict = Depends(require_accounting),
):
    return get_audit_logs(db, table_name=table_name, record_id=record_id, skip=skip, limit=limit)
