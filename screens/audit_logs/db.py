# screens/audit_logs/db.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from core.records import AuditLog
from core.store import AUDITED_TABLES, DataStore

AUDIT_ACTIONS = ("INSERT", "UPDATE")


def list_audit_logs(
    store: DataStore,
    table_name: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 200,
) -> List[AuditLog]:
    filters: Dict[str, Any] = {}
    if table_name:
        filters["table_name"] = table_name
    if action:
        filters["action"] = action
    rows = store.select("audit_logs", filters, order_by="id", desc=True, limit=limit).unwrap()
    return AuditLog.from_rows(rows)


def audited_tables() -> List[str]:
    return sorted(AUDITED_TABLES)


def changed_fields(entry: AuditLog) -> Dict[str, Any]:
    """Columns whose value differs between old and new, as {column: (old, new)}."""
    old = entry.old_values or {}
    new = entry.new_values or {}
    skip = {"updated_at"}
    return {
        k: (old.get(k), new.get(k))
        for k in sorted(set(old) | set(new))
        if k not in skip and old.get(k) != new.get(k)
    }
