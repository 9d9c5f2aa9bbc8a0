"""
In-memory stand-in for a Supabase project, used by the test suite.

Covers the parts of the supabase-py surface the services use: the PostgREST
query builder (select with embedded joins, eq/neq/in_/or_ filters, order,
limit, insert/update/delete), GoTrue auth plus its admin API, and Storage
buckets. Errors are raised as ``postgrest.exceptions.APIError`` with the
same codes the hosted backend returns.
"""

import copy
import uuid
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

from postgrest.exceptions import APIError

TABLES = (
    "profiles", "animals", "adoption_requests", "conversations",
    "messages", "reports", "activity_log",
)

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)
ALL_ROWS = "*"


def missing_relation(name: str) -> APIError:
    return APIError({
        "code": "42P01",
        "message": f'relation "public.{name}" does not exist',
        "hint": None,
        "details": None,
    })


def unique_violation(constraint: str) -> APIError:
    return APIError({
        "code": "23505",
        "message": f'duplicate key value violates unique constraint "{constraint}"',
        "hint": None,
        "details": None,
    })


class FakeAuthError(Exception):
    pass


class FakeStorageError(Exception):
    pass


# Select-string parsing

def _split_top_level(columns: str) -> List[str]:
    parts, depth, current = [], 0, ""
    for char in columns:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    if current.strip():
        parts.append(current.strip())
    return parts


def _parse_embed(item: str) -> Tuple[str, str, Optional[str], bool, str]:
    """'alias:table!hint(cols)' -> (alias, table, hint, inner, cols)"""
    head, inner_cols = item.split("(", 1)
    inner_cols = inner_cols.rsplit(")", 1)[0]
    alias = None
    if ":" in head:
        alias, head = head.split(":", 1)
    hints = head.strip().split("!")
    table = hints[0].strip()
    hint, inner = None, False
    for extra in hints[1:]:
        if extra == "inner":
            inner = True
        else:
            hint = extra
    return (alias or table).strip(), table, hint, inner, inner_cols


class FakeDatabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TABLES}
        self.views: Dict[str, Callable[["FakeDatabase"], List[Dict[str, Any]]]] = {}
        self.unique: Dict[str, List[Tuple[str, ...]]] = {}
        self.hidden: Dict[str, set] = {}
        self.failures: List[Dict[str, Any]] = []
        self.calls: List[Tuple[str, str]] = []
        self._clock = 0
        self.auth = FakeAuth(self)
        self.storage = FakeStorage()

    # Helpers for tests

    def now(self) -> str:
        self._clock += 1
        return (BASE_TIME + timedelta(seconds=self._clock)).isoformat()

    def add(self, table: str, **row) -> Dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self.now())
        row.setdefault("updated_at", row["created_at"])
        self.tables[table].append(row)
        return row

    def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        for row in self.tables[table]:
            if str(row.get("id")) == str(row_id):
                return row
        return None

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables[table]

    def count(self, table: str, operation: str) -> int:
        return len([c for c in self.calls if c == (table, operation)])

    def hide(self, table: str, row_id: str = ALL_ROWS):
        """Make a row (default: every row) invisible to the user-scoped client (row-level security)"""
        self.hidden.setdefault(table, set()).add(str(row_id))

    def drop(self, table: str):
        self.tables.pop(table, None)

    def fail(self, table: str, operation: str, error: Optional[Exception] = None,
             times: int = 1, when: Optional[Callable[[Any], bool]] = None):
        """Make the next ``times`` matching operations raise ``error``"""
        self.failures.append({
            "table": table,
            "operation": operation,
            "error": error or APIError({"code": "XX000", "message": f"{operation} on {table} failed"}),
            "times": times,
            "when": when,
        })

    def add_unique(self, table: str, *columns: str):
        self.unique.setdefault(table, []).append(columns)

    def install_views(self):
        """Register the two denormalized read views the schema defines"""
        self.views["animals_with_advertiser"] = _animals_with_advertiser
        self.views["adoption_requests_detailed"] = _adoption_requests_detailed

    # Used by the query builder

    def check_failure(self, table: str, operation: str, payload: Any):
        for failure in self.failures:
            if failure["times"] <= 0:
                continue
            if failure["table"] != table or failure["operation"] != operation:
                continue
            if failure["when"] and not failure["when"](payload):
                continue
            failure["times"] -= 1
            raise failure["error"]

    def source(self, name: str) -> List[Dict[str, Any]]:
        if name in self.views:
            return self.views[name](self)
        if name not in self.tables:
            raise missing_relation(name)
        return self.tables[name]


def _profile(db: FakeDatabase, profile_id: Any) -> Dict[str, Any]:
    if not profile_id:
        return {}
    return db.get("profiles", profile_id) or {}


def _animals_with_advertiser(db: FakeDatabase) -> List[Dict[str, Any]]:
    rows = []
    for animal in db.source("animals"):
        advertiser = _profile(db, animal.get("advertiser_id"))
        row = dict(animal)
        row["advertiser_name"] = advertiser.get("name") or "Advertiser"
        row["advertiser_email"] = advertiser.get("email") or ""
        row["advertiser_phone"] = advertiser.get("phone") or ""
        row["advertiser_address"] = advertiser.get("address") or ""
        rows.append(row)
    return rows


def _adoption_requests_detailed(db: FakeDatabase) -> List[Dict[str, Any]]:
    rows = []
    for request in db.source("adoption_requests"):
        animal = db.get("animals", request.get("animal_id")) or {}
        adopter = _profile(db, request.get("adopter_id"))
        advertiser = _profile(db, animal.get("advertiser_id"))
        row = dict(request)
        row.update({
            "animal_name": animal.get("name"),
            "animal_species": animal.get("species"),
            "animal_breed": animal.get("breed"),
            "animal_image_url": animal.get("image_url"),
            "adopter_name": adopter.get("name"),
            "adopter_email": adopter.get("email"),
            "adopter_phone": adopter.get("phone"),
            "advertiser_id": animal.get("advertiser_id"),
            "advertiser_name": advertiser.get("name"),
            "advertiser_email": advertiser.get("email"),
        })
        rows.append(row)
    return rows


class FakeQuery:
    def __init__(self, db: FakeDatabase, name: str, privileged: bool):
        self.db = db
        self.name = name
        self.privileged = privileged
        self.operation = "select"
        self.columns = "*"
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.ordering: List[Tuple[str, bool]] = []
        self.row_limit: Optional[int] = None

    # Builder

    def select(self, columns: str = "*", **kwargs):
        self.columns = columns
        return self

    def insert(self, data, **kwargs):
        self.operation, self.payload = "insert", data
        return self

    def update(self, data, **kwargs):
        self.operation, self.payload = "update", data
        return self

    def delete(self, **kwargs):
        self.operation = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: str(row.get(column)) == str(value))
        return self

    def neq(self, column: str, value: Any):
        self.filters.append(lambda row: str(row.get(column)) != str(value))
        return self

    def in_(self, column: str, values):
        allowed = {str(v) for v in values}
        self.filters.append(lambda row: str(row.get(column)) in allowed)
        return self

    def or_(self, expression: str):
        clauses = []
        for clause in expression.split(","):
            column, op, value = clause.split(".", 2)
            if op != "eq":
                raise ValueError(f"unsupported or_ operator: {op}")
            clauses.append((column, value))
        self.filters.append(lambda row: any(str(row.get(c)) == v for c, v in clauses))
        return self

    def order(self, column: str, desc: bool = False, **kwargs):
        self.ordering.append((column, desc))
        return self

    def limit(self, count: int, **kwargs):
        self.row_limit = count
        return self

    # Execution

    def _visible(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        hidden = self.db.hidden.get(self.name, set())
        if self.privileged or not hidden:
            return rows
        return [row for row in rows if ALL_ROWS not in hidden and str(row.get("id")) not in hidden]

    def _matching(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [row for row in self._visible(rows) if all(f(row) for f in self.filters)]

    def execute(self):
        self.db.calls.append((self.name, self.operation))
        self.db.check_failure(self.name, self.operation, self.payload)
        source = self.db.source(self.name)
        handler = getattr(self, f"_execute_{self.operation}")
        return SimpleNamespace(data=handler(source), count=None)

    def _execute_select(self, source):
        rows = self._matching(source)
        for column, desc in reversed(self.ordering):
            rows = sorted(rows, key=lambda r: (r.get(column) is None, str(r.get(column) or "")), reverse=desc)
        projected = []
        for row in rows:
            shaped = self._project(self.name, row, self.columns)
            if shaped is not None:
                projected.append(shaped)
        if self.row_limit is not None:
            projected = projected[:self.row_limit]
        return projected

    def _project(self, table: str, row: Dict[str, Any], columns: str) -> Optional[Dict[str, Any]]:
        shaped: Dict[str, Any] = {}
        for item in _split_top_level(columns):
            if item == "*":
                shaped.update(copy.deepcopy(row))
            elif "(" in item:
                alias, child_table, hint, inner, child_cols = _parse_embed(item)
                fk = hint if hint and hint in row else f"{alias}_id"
                if fk not in row:
                    fk = f"{child_table.rstrip('s')}_id"
                child = None
                if row.get(fk) is not None:
                    for candidate in self._visible_in(child_table):
                        if str(candidate.get("id")) == str(row.get(fk)):
                            child = self._project(child_table, candidate, child_cols)
                            break
                if child is None and inner:
                    return None
                shaped[alias] = child
            else:
                shaped[item] = copy.deepcopy(row.get(item))
        return shaped

    def _visible_in(self, table: str) -> List[Dict[str, Any]]:
        rows = self.db.source(table)
        hidden = self.db.hidden.get(table, set())
        if self.privileged or not hidden:
            return rows
        return [row for row in rows if ALL_ROWS not in hidden and str(row.get("id")) not in hidden]

    def _execute_insert(self, source):
        records = self.payload if isinstance(self.payload, list) else [self.payload]
        inserted = []
        for record in records:
            row = dict(record)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", self.db.now())
            row.setdefault("updated_at", row["created_at"])
            for columns in self.db.unique.get(self.name, []):
                key = tuple(str(row.get(c)) for c in columns)
                if any(tuple(str(r.get(c)) for c in columns) == key for r in source):
                    raise unique_violation(f"{self.name}_{'_'.join(columns)}_key")
            source.append(row)
            inserted.append(copy.deepcopy(row))
        return inserted

    def _execute_update(self, source):
        updated = []
        for row in self._matching(source):
            row.update(copy.deepcopy(self.payload))
            updated.append(copy.deepcopy(row))
        return updated

    def _execute_delete(self, source):
        doomed = self._matching(source)
        for row in doomed:
            source.remove(row)
        return [copy.deepcopy(row) for row in doomed]


class FakeAuthAdmin:
    def __init__(self, auth: "FakeAuth"):
        self.auth = auth

    def update_user_by_id(self, user_id: str, attributes: Dict[str, Any]):
        self.auth.db.calls.append(("auth", "update_user_by_id"))
        if self.auth.fail_confirm:
            raise FakeAuthError("User not allowed")
        user = self.auth.users.get(user_id)
        if user is None:
            raise FakeAuthError("User not found")
        if attributes.get("email_confirm"):
            user.confirmed = True
        return SimpleNamespace(user=user)

    def delete_user(self, user_id: str, should_soft_delete: bool = False):
        self.auth.db.calls.append(("auth", "delete_user"))
        if user_id not in self.auth.users:
            raise FakeAuthError("User not found")
        del self.auth.users[user_id]

    def list_users(self, page: Optional[int] = None, per_page: Optional[int] = None):
        return list(self.auth.users.values())


class FakeAuth:
    def __init__(self, db: FakeDatabase):
        self.db = db
        self.users: Dict[str, SimpleNamespace] = {}
        self.tokens: Dict[str, str] = {}
        self.profile_trigger = True
        self.require_confirmation = False
        self.fail_confirm = False
        self.sign_outs = 0
        self.admin = FakeAuthAdmin(self)

    def create_user(self, email: str, password: str = "secret123", user_id: Optional[str] = None,
                    confirmed: bool = True) -> SimpleNamespace:
        now = self.db.now()
        user = SimpleNamespace(
            id=user_id or str(uuid.uuid4()),
            email=email,
            password=password,
            confirmed=confirmed,
            user_metadata={},
            app_metadata={"provider": "email"},
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        return user

    def issue_token(self, user_id: str) -> str:
        token = f"token-{uuid.uuid4().hex}"
        self.tokens[token] = user_id
        return token

    def _by_email(self, email: str) -> Optional[SimpleNamespace]:
        for user in self.users.values():
            if user.email.lower() == email.lower():
                return user
        return None

    def sign_up(self, credentials: Dict[str, Any]):
        self.db.calls.append(("auth", "sign_up"))
        if self._by_email(credentials["email"]):
            raise FakeAuthError("User already registered")
        user = self.create_user(
            credentials["email"], credentials["password"], confirmed=not self.require_confirmation
        )
        if self.profile_trigger:
            self.db.add("profiles", id=user.id, email=user.email, status="active")
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials: Dict[str, Any]):
        self.db.calls.append(("auth", "sign_in_with_password"))
        user = self._by_email(credentials["email"])
        if user is None or user.password != credentials["password"]:
            raise FakeAuthError("Invalid login credentials")
        if not user.confirmed:
            raise FakeAuthError("Email not confirmed")
        token = self.issue_token(user.id)
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=token))

    def get_user(self, jwt: Optional[str] = None):
        self.db.calls.append(("auth", "get_user"))
        user_id = self.tokens.get(jwt)
        if user_id is None or user_id not in self.users:
            raise FakeAuthError("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=self.users[user_id])

    def sign_out(self, options: Optional[Dict[str, Any]] = None):
        self.sign_outs += 1


class FakeBucket:
    def __init__(self, name: str, files: Dict[str, Dict[str, Any]]):
        self.name = name
        self.files = files

    def upload(self, path: str, file: bytes, file_options: Optional[Dict[str, Any]] = None):
        key = f"{self.name}/{path}"
        if key in self.files and (file_options or {}).get("upsert") != "true":
            raise FakeStorageError("The resource already exists")
        self.files[key] = {"content": file, "options": dict(file_options or {})}
        return SimpleNamespace(path=path, full_path=key)

    def get_public_url(self, path: str, options: Optional[Dict[str, Any]] = None) -> str:
        return f"https://storage.example.com/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.files: Dict[str, Dict[str, Any]] = {}
        self.failing_buckets: set = set()

    def from_(self, bucket: str) -> FakeBucket:
        if bucket in self.failing_buckets:
            raise FakeStorageError(f"Bucket not found: {bucket}")
        return FakeBucket(bucket, self.files)


class FakeSupabase:
    """One client handle over a shared FakeDatabase; ``privileged`` mimics the service-role key."""

    def __init__(self, db: FakeDatabase, privileged: bool = False):
        self.db = db
        self.privileged = privileged
        self.auth = db.auth
        self.storage = db.storage

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.db, name, self.privileged)

    def from_(self, name: str) -> FakeQuery:
        return self.table(name)


def identity_of(profile: Dict[str, Any]) -> Dict[str, Any]:
    """The auth identity dict routes hand to services"""
    return {"id": profile["id"], "email": profile["email"]}
