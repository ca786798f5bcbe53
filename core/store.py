# core/store.py
"""
Typed data client over the SQLAlchemy engine.

Every call returns a StoreResult carrying either data or a StoreError whose
message is the backend's own text; backend exceptions never escape.  Table
policies (which roles may read / write which table, and which tables are
scoped to the row owner) are enforced here so pages cannot bypass them.
"""
from __future__ import annotations

import json
import logging
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set

from sqlalchemy import MetaData, Table, and_, func, select as sa_select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, NoSuchTableError, SQLAlchemyError

log = logging.getLogger(__name__)

SERVICE_ROLE = "service_role"
STAFF = {"admin", "nurse"}
ADMIN = {"admin"}

# table -> action -> roles allowed.  Missing action means nobody but the
# service role.  Students are never deleted through the client.
TABLE_POLICIES: Dict[str, Dict[str, Set[str]]] = {
    "students":                {"select": STAFF, "insert": STAFF, "update": STAFF},
    "student_progression":     {"select": STAFF, "insert": STAFF},
    "medical_documents":       {"select": STAFF, "insert": STAFF},
    "clinic_visits":           {"select": STAFF, "insert": STAFF, "update": STAFF},
    "health_service_fees":     {"select": STAFF, "insert": ADMIN, "update": ADMIN},
    "fee_payments":            {"select": STAFF, "insert": STAFF},
    "medications":             {"select": STAFF, "insert": STAFF, "update": STAFF},
    "medication_dispensing":   {"select": STAFF, "insert": STAFF},
    "immunizations":           {"select": STAFF, "insert": STAFF, "update": STAFF},
    "vaccination_requirements": {"select": STAFF, "insert": ADMIN, "update": ADMIN},
    "profiles":                {"select": STAFF, "insert": ADMIN, "update": STAFF},
    "notifications":           {"select": STAFF, "insert": STAFF, "update": STAFF, "delete": STAFF},
    "audit_logs":              {"select": ADMIN},
}

# Row ownership: non-admin staff only see / change rows they own.
OWNER_COLUMNS: Dict[str, Dict[str, str]] = {
    "profiles": {"update": "id"},
    "notifications": {"select": "user_id", "update": "user_id", "delete": "user_id"},
}

# Columns only an admin may change, even on rows the caller owns.
ADMIN_ONLY_COLUMNS: Dict[str, Set[str]] = {
    "profiles": {"role", "is_active", "email"},
}

AUDITED_TABLES = {
    "students", "clinic_visits", "medications", "medication_dispensing",
    "immunizations", "profiles", "health_service_fees", "fee_payments",
}

# never copied into audit rows or returned by profile selects
SECRET_COLUMNS = {"password_hash"}


class StoreError(Exception):
    def __init__(self, message: str, code: str = "backend_error", table: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.table = table

    def __str__(self) -> str:
        return self.message


@dataclass
class StoreResult:
    data: Any = None
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.data


@dataclass(frozen=True)
class Op:
    op: str
    value: Any


def eq(value: Any) -> Op: return Op("eq", value)
def neq(value: Any) -> Op: return Op("neq", value)
def gt(value: Any) -> Op: return Op("gt", value)
def gte(value: Any) -> Op: return Op("gte", value)
def lt(value: Any) -> Op: return Op("lt", value)
def lte(value: Any) -> Op: return Op("lte", value)
def ilike(pattern: str) -> Op: return Op("ilike", pattern)
def in_(values: Iterable[Any]) -> Op: return Op("in", tuple(values))


@dataclass(frozen=True)
class Increment:
    """An update value applied relative to the stored one: col = col + amount."""
    amount: Any


def incr(amount: Any) -> Increment: return Increment(amount)


def _to_db(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return 1 if value else 0
    return value


def _backend_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def _error_code(exc: SQLAlchemyError) -> str:
    if isinstance(exc, IntegrityError):
        msg = _backend_message(exc).lower()
        if "unique" in msg or "duplicate" in msg:
            return "unique_violation"
        if "check" in msg:
            return "check_violation"
        if "foreign key" in msg:
            return "foreign_key_violation"
        return "integrity_error"
    return "backend_error"


@dataclass
class DataStore:
    engine: Engine
    roles: Set[str] = field(default_factory=set)
    user_id: Optional[int] = None
    _tables: Dict[str, Table] = field(default_factory=dict, repr=False)
    # set only on stores handed out by transaction()
    _conn: Optional[Connection] = field(default=None, repr=False)

    # ── identity ──────────────────────────────────────────────────────────

    @classmethod
    def service(cls, engine: Engine) -> "DataStore":
        return cls(engine, {SERVICE_ROLE})

    def as_user(self, user_id: Optional[int], roles: Iterable[str]) -> "DataStore":
        return DataStore(self.engine, set(roles), user_id, self._tables)

    @contextmanager
    def transaction(self) -> Iterator["DataStore"]:
        """
        Yield a store whose calls share one connection and one transaction.

        The block commits when it exits normally and rolls back when an
        exception (typically an unwrapped StoreError) leaves it.
        """
        if self._conn is not None:
            yield self
            return
        with self.engine.begin() as conn:
            yield DataStore(self.engine, self.roles, self.user_id, self._tables, conn)

    @property
    def is_service(self) -> bool:
        return SERVICE_ROLE in self.roles

    @property
    def is_admin(self) -> bool:
        return self.is_service or "admin" in self.roles

    # ── helpers ───────────────────────────────────────────────────────────

    def _table(self, name: str) -> Table:
        if name not in self._tables:
            bind = self._conn if self._conn is not None else self.engine
            self._tables[name] = Table(name, MetaData(), autoload_with=bind)
        return self._tables[name]

    def _begin(self):
        return nullcontext(self._conn) if self._conn is not None else self.engine.begin()

    def _connect(self):
        return nullcontext(self._conn) if self._conn is not None else self.engine.connect()

    def _check(self, table: str, action: str) -> Optional[StoreError]:
        if self.is_service:
            return None
        allowed = TABLE_POLICIES.get(table, {}).get(action, set())
        if self.roles & allowed:
            return None
        log.warning("Denied %s on %s for roles=%s", action, table, sorted(self.roles))
        return StoreError(f"permission denied for table {table}", "permission_denied", table)

    def _owner_clause(self, tbl: Table, action: str):
        if self.is_admin:
            return None
        col = OWNER_COLUMNS.get(tbl.name, {}).get(action)
        if not col:
            return None
        return tbl.c[col] == self.user_id

    def _where(self, tbl: Table, filters: Optional[Mapping[str, Any]]):
        clauses = []
        for key, raw in (filters or {}).items():
            if key not in tbl.c:
                raise StoreError(f'column "{key}" does not exist', "backend_error", tbl.name)
            col = tbl.c[key]
            op = raw if isinstance(raw, Op) else Op("eq", raw)
            value = _to_db(op.value) if op.op != "in" else tuple(_to_db(v) for v in op.value)
            if op.op == "eq":
                clauses.append(col.is_(None) if value is None else col == value)
            elif op.op == "neq":
                clauses.append(col.is_not(None) if value is None else col != value)
            elif op.op == "gt":
                clauses.append(col > value)
            elif op.op == "gte":
                clauses.append(col >= value)
            elif op.op == "lt":
                clauses.append(col < value)
            elif op.op == "lte":
                clauses.append(col <= value)
            elif op.op == "ilike":
                clauses.append(col.ilike(value))
            elif op.op == "in":
                clauses.append(col.in_(value))
            else:
                raise StoreError(f"unsupported filter operator {op.op}", "backend_error", tbl.name)
        return clauses

    @staticmethod
    def _row(row) -> Dict[str, Any]:
        return {k: v for k, v in dict(row._mapping).items() if k not in SECRET_COLUMNS}

    def _audit(self, conn: Connection, action: str, table: str, record_id: Any,
               old: Optional[Dict[str, Any]], new: Optional[Dict[str, Any]]) -> None:
        if table not in AUDITED_TABLES:
            return
        audit = self._table("audit_logs")
        conn.execute(audit.insert().values(
            user_id=self.user_id,
            action=action,
            table_name=table,
            record_id=record_id,
            old_values=json.dumps(old, default=str) if old is not None else None,
            new_values=json.dumps(new, default=str) if new is not None else None,
        ))

    def _fail(self, table: str, exc: SQLAlchemyError) -> StoreResult:
        err = StoreError(_backend_message(exc), _error_code(exc), table)
        log.warning("Store error on %s: %s", table, err.message)
        return StoreResult(error=err)

    # ── operations ────────────────────────────────────────────────────────

    def insert(self, table: str, record: Mapping[str, Any]) -> StoreResult:
        """Insert one row and return it as stored (defaults filled in)."""
        denied = self._check(table, "insert")
        if denied:
            return StoreResult(error=denied)
        try:
            tbl = self._table(table)
            if table in AUDITED_TABLES:
                self._table("audit_logs")
            payload = {k: _to_db(v) for k, v in record.items() if k in tbl.c and k != "id"}
            with self._begin() as conn:
                res = conn.execute(tbl.insert().values(**payload))
                new_id = res.inserted_primary_key[0]
                row = conn.execute(sa_select(tbl).where(tbl.c.id == new_id)).fetchone()
                created = self._row(row)
                self._audit(conn, "INSERT", table, new_id, None, created)
            return StoreResult(data=created)
        except NoSuchTableError:
            return StoreResult(error=StoreError(f'relation "{table}" does not exist', "not_found", table))
        except SQLAlchemyError as e:
            return self._fail(table, e)

    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> StoreResult:
        denied = self._check(table, "select")
        if denied:
            return StoreResult(error=denied)
        try:
            tbl = self._table(table)
            clauses = self._where(tbl, filters)
            owner = self._owner_clause(tbl, "select")
            if owner is not None:
                clauses.append(owner)
            stmt = sa_select(tbl)
            if clauses:
                stmt = stmt.where(and_(*clauses))
            if order_by:
                if order_by not in tbl.c:
                    raise StoreError(f'column "{order_by}" does not exist', "backend_error", table)
                col = tbl.c[order_by]
                stmt = stmt.order_by(col.desc() if desc else col.asc(), tbl.c.id.desc() if desc else tbl.c.id.asc())
            else:
                stmt = stmt.order_by(tbl.c.id)
            if limit:
                stmt = stmt.limit(limit)
            with self._connect() as conn:
                rows = [self._row(r) for r in conn.execute(stmt)]
            return StoreResult(data=rows)
        except StoreError as e:
            return StoreResult(error=e)
        except NoSuchTableError:
            return StoreResult(error=StoreError(f'relation "{table}" does not exist', "not_found", table))
        except SQLAlchemyError as e:
            return self._fail(table, e)

    def get(self, table: str, record_id: Any) -> StoreResult:
        res = self.select(table, {"id": record_id}, limit=1)
        if not res.ok:
            return res
        return StoreResult(data=res.data[0] if res.data else None)

    def count(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> StoreResult:
        denied = self._check(table, "select")
        if denied:
            return StoreResult(error=denied)
        try:
            tbl = self._table(table)
            clauses = self._where(tbl, filters)
            owner = self._owner_clause(tbl, "select")
            if owner is not None:
                clauses.append(owner)
            stmt = sa_select(func.count()).select_from(tbl)
            if clauses:
                stmt = stmt.where(and_(*clauses))
            with self._connect() as conn:
                return StoreResult(data=int(conn.execute(stmt).scalar() or 0))
        except StoreError as e:
            return StoreResult(error=e)
        except NoSuchTableError:
            return StoreResult(error=StoreError(f'relation "{table}" does not exist', "not_found", table))
        except SQLAlchemyError as e:
            return self._fail(table, e)

    def update(self, table: str, filters: Mapping[str, Any] | int, changes: Mapping[str, Any]) -> StoreResult:
        """Update matching rows; returns the updated rows. An int filter means id."""
        denied = self._check(table, "update")
        if denied:
            return StoreResult(error=denied)
        if not isinstance(filters, Mapping):
            filters = {"id": filters}
        restricted = ADMIN_ONLY_COLUMNS.get(table, set()) & set(changes)
        if restricted and not self.is_admin:
            log.warning("Denied update of %s on %s for roles=%s", sorted(restricted), table, sorted(self.roles))
            return StoreResult(error=StoreError(
                f"permission denied for column {sorted(restricted)[0]} of table {table}", "permission_denied", table))
        try:
            tbl = self._table(table)
            if table in AUDITED_TABLES:
                self._table("audit_logs")
            clauses = self._where(tbl, filters)
            owner = self._owner_clause(tbl, "update")
            if owner is not None:
                clauses.append(owner)
            values = {
                k: (tbl.c[k] + v.amount if isinstance(v, Increment) else _to_db(v))
                for k, v in changes.items() if k in tbl.c and k != "id"
            }
            if "updated_at" in tbl.c:
                values["updated_at"] = datetime.now().isoformat(sep=" ", timespec="seconds")
            cond = and_(*clauses) if clauses else None
            with self._begin() as conn:
                q = sa_select(tbl)
                if cond is not None:
                    q = q.where(cond)
                before = [self._row(r) for r in conn.execute(q)]
                if not before:
                    return StoreResult(data=[])
                ids = [r["id"] for r in before]
                conn.execute(tbl.update().where(tbl.c.id.in_(ids)).values(**values))
                after = [self._row(r) for r in conn.execute(sa_select(tbl).where(tbl.c.id.in_(ids)).order_by(tbl.c.id))]
                old_by_id = {r["id"]: r for r in before}
                for row in after:
                    self._audit(conn, "UPDATE", table, row["id"], old_by_id.get(row["id"]), row)
            return StoreResult(data=after)
        except StoreError as e:
            return StoreResult(error=e)
        except NoSuchTableError:
            return StoreResult(error=StoreError(f'relation "{table}" does not exist', "not_found", table))
        except SQLAlchemyError as e:
            return self._fail(table, e)

    def delete(self, table: str, filters: Mapping[str, Any]) -> StoreResult:
        denied = self._check(table, "delete")
        if denied:
            return StoreResult(error=denied)
        try:
            tbl = self._table(table)
            clauses = self._where(tbl, filters)
            owner = self._owner_clause(tbl, "delete")
            if owner is not None:
                clauses.append(owner)
            if not clauses:
                return StoreResult(error=StoreError("DELETE requires a WHERE clause", "backend_error", table))
            with self._begin() as conn:
                res = conn.execute(tbl.delete().where(and_(*clauses)))
            return StoreResult(data=res.rowcount)
        except StoreError as e:
            return StoreResult(error=e)
        except NoSuchTableError:
            return StoreResult(error=StoreError(f'relation "{table}" does not exist', "not_found", table))
        except SQLAlchemyError as e:
            return self._fail(table, e)
