"""
Storage boundary.

The engine only needs two narrow interfaces, RuleSource and DispositionStore,
so tests can substitute fakes. InventoryDatabase implements both on SQLite
and also carries the administrative tables: rule CRUD, approved software,
disposition decisions, admin feedback, analysis history and saved clients.

Concurrency
Each call opens its own connection. Pending dispositions are created with
INSERT ... ON CONFLICT DO NOTHING followed by a re-read, so two runs racing
on the same canonical name end with a single row and both observe it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Set, Type

from pydantic import BaseModel, ValidationError

from .errors import (
    DispositionStoreError,
    DuplicateRecord,
    NotFound,
    RuleStoreError,
    StoreError,
)
from .models import (
    ApprovedSoftware,
    ApprovedSoftwareIn,
    ApprovedSoftwareUpdate,
    DispositionIn,
    DispositionRecord,
    ExclusionRule,
    ExclusionRuleIn,
    ExclusionRuleUpdate,
    Feedback,
    FeedbackIn,
    HistoryEntry,
    MappingRule,
    MappingRuleIn,
    MappingRuleUpdate,
    SavedClient,
    SavedClientIn,
    SavedClientSummary,
    SavedClientUpdate,
)
from .rules import (
    DEFAULT_CATEGORY,
    DEFAULT_DEPLOYMENT_TYPE,
    DEFAULT_DISPOSITION,
    DEFAULT_EXCLUSION_RULES,
    DEFAULT_MAPPING_RULES,
    USER_DEFINED_CATEGORY,
)

logger = logging.getLogger(__name__)

_LOOKUP_CHUNK = 500

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS exclusion_rules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        pattern_type TEXT NOT NULL CHECK (pattern_type IN ('exact', 'contains', 'startswith', 'endswith', 'regex')),
        pattern_value TEXT NOT NULL,
        category TEXT NOT NULL,
        reason TEXT,
        created_by TEXT DEFAULT 'system',
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
        is_active INTEGER DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS software_mappings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        original_pattern TEXT NOT NULL,
        pattern_type TEXT NOT NULL CHECK (pattern_type IN ('exact', 'contains', 'startswith', 'regex')),
        canonical_name TEXT NOT NULL,
        category TEXT,
        deployment_type TEXT CHECK (deployment_type IN ('Desktop', 'SaaS', 'Both')),
        description TEXT,
        created_by TEXT DEFAULT 'system',
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
        is_active INTEGER DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS approved_software (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        category TEXT,
        vendor TEXT,
        notes TEXT,
        is_active INTEGER DEFAULT 1,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS disposition_mappings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        canonical_name TEXT NOT NULL UNIQUE,
        disposition TEXT NOT NULL DEFAULT 'pending',
        approved_software_id INTEGER REFERENCES approved_software(id) ON DELETE SET NULL,
        notes TEXT,
        updated_by TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS admin_feedback (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        software_name TEXT NOT NULL,
        action_type TEXT NOT NULL CHECK (action_type IN ('exclude', 'include', 'categorize', 'merge', 'rename')),
        reason TEXT NOT NULL,
        suggested_category TEXT,
        suggested_canonical_name TEXT,
        suggested_deployment_type TEXT,
        applied_to_rules INTEGER DEFAULT 0,
        created_by TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS analysis_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        upload_filename TEXT NOT NULL,
        agency_name TEXT,
        uploaded_at TEXT DEFAULT CURRENT_TIMESTAMP,
        processed_at TEXT,
        input_count INTEGER,
        output_count INTEGER,
        excluded_count INTEGER,
        status TEXT DEFAULT 'pending'
    )
    """,

    """
    CREATE TABLE IF NOT EXISTS saved_clients (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        agency_name TEXT NOT NULL,
        analysis_data TEXT,
        source_filename TEXT,
        summary TEXT,
        notes TEXT,
        status TEXT DEFAULT 'in_progress',
        created_by TEXT DEFAULT 'admin',
        updated_by TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_exclusion_rules_active ON exclusion_rules(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_software_mappings_active ON software_mappings(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_admin_feedback_applied ON admin_feedback(applied_to_rules)",
]

_DISPOSITION_SELECT = """
    SELECT dm.*, aps.name AS replacement_name, aps.category AS replacement_category
    FROM disposition_mappings dm
    LEFT JOIN approved_software aps ON dm.approved_software_id = aps.id
"""


class RuleSource(Protocol):
    """Ordered, active rule sets. Order is insertion order and is significant."""

    def load_exclusion_rules(self) -> List[ExclusionRule]:
        """Return active exclusion rules in stored order."""

    def load_mapping_rules(self) -> List[MappingRule]:
        """Return active mapping rules in stored order."""


class DispositionStore(Protocol):
    """Disposition lookup plus idempotent creation of pending records."""

    def fetch_dispositions(self, canonical_names: Set[str]) -> List[DispositionRecord]:
        """Return existing records for the given canonical names."""

    def upsert_pending_disposition(self, canonical_name: str) -> DispositionRecord:
        """Create a pending record unless one exists; return the stored record."""


def _chunks(items: List[str], size: int) -> Iterator[List[str]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


def _validate_rules(model: Type[BaseModel], rows: List[sqlite3.Row]) -> list:
    try:
        return [model.model_validate(dict(r)) for r in rows]
    except ValidationError as exc:
        raise RuleStoreError(f"malformed {model.__name__} in store: {exc}") from exc


class InventoryDatabase:
    """SQLite-backed rule store, disposition store and admin tables."""

    def __init__(self, db_path: Path, timeout: float = 30.0) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout

    @contextmanager
    def _connection(self, error_cls: Type[StoreError] = StoreError) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        except sqlite3.Error as exc:
            raise error_cls(f"cannot open {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise DuplicateRecord(str(exc)) from exc
        except sqlite3.Error as exc:
            conn.rollback()
            raise error_cls(str(exc)) from exc
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    # --- lifecycle ---

    def init_schema(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def seed_defaults(self) -> bool:
        """Insert the default rule sets when both rule tables are empty."""
        with self._connection() as conn:
            n_excl = conn.execute("SELECT COUNT(*) FROM exclusion_rules").fetchone()[0]
            n_map = conn.execute("SELECT COUNT(*) FROM software_mappings").fetchone()[0]
            if n_excl or n_map:
                return False
            conn.executemany(
                "INSERT INTO exclusion_rules (pattern_type, pattern_value, category, reason) "
                "VALUES (:pattern_type, :pattern_value, :category, :reason)",
                DEFAULT_EXCLUSION_RULES,
            )
            conn.executemany(
                "INSERT INTO software_mappings "
                "(pattern_type, original_pattern, canonical_name, category, deployment_type, description) "
                "VALUES (:pattern_type, :original_pattern, :canonical_name, :category, :deployment_type, :description)",
                DEFAULT_MAPPING_RULES,
            )
        logger.info(
            "Seeded %d exclusion rules and %d mapping rules",
            len(DEFAULT_EXCLUSION_RULES),
            len(DEFAULT_MAPPING_RULES),
        )
        return True

    def ping(self) -> bool:
        try:
            with self._connection() as conn:
                conn.execute("SELECT 1")
        except StoreError as exc:
            logger.warning("Database health check failed: %s", exc)
            return False
        return True

    # --- RuleSource ---

    def load_exclusion_rules(self) -> List[ExclusionRule]:
        with self._connection(RuleStoreError) as conn:
            rows = conn.execute("SELECT * FROM exclusion_rules WHERE is_active = 1 ORDER BY id").fetchall()
        return _validate_rules(ExclusionRule, rows)

    def load_mapping_rules(self) -> List[MappingRule]:
        with self._connection(RuleStoreError) as conn:
            rows = conn.execute("SELECT * FROM software_mappings WHERE is_active = 1 ORDER BY id").fetchall()
        return _validate_rules(MappingRule, rows)

    # --- exclusion rule admin ---

    def list_exclusion_rules(self) -> List[ExclusionRule]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM exclusion_rules ORDER BY category, pattern_value").fetchall()
        return [ExclusionRule.model_validate(dict(r)) for r in rows]

    def _insert_exclusion_rule(self, conn: sqlite3.Connection, rule: ExclusionRuleIn, created_by: str) -> int:
        cur = conn.execute(
            "INSERT INTO exclusion_rules (pattern_type, pattern_value, category, reason, created_by) "
            "VALUES (?, ?, ?, ?, ?)",
            (rule.pattern_type, rule.pattern_value, rule.category, rule.reason, created_by),
        )
        return cur.lastrowid

    def create_exclusion_rule(self, rule: ExclusionRuleIn, created_by: str = "admin") -> ExclusionRule:
        with self._connection() as conn:
            rule_id = self._insert_exclusion_rule(conn, rule, created_by)
            row = conn.execute("SELECT * FROM exclusion_rules WHERE id = ?", (rule_id,)).fetchone()
        return ExclusionRule.model_validate(dict(row))

    def update_exclusion_rule(self, rule_id: int, rule: ExclusionRuleUpdate) -> ExclusionRule:
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE exclusion_rules SET pattern_type = ?, pattern_value = ?, category = ?, reason = ?, "
                "is_active = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (rule.pattern_type, rule.pattern_value, rule.category, rule.reason, int(rule.is_active), rule_id),
            )
            if cur.rowcount == 0:
                raise NotFound(f"exclusion rule {rule_id} not found")
            row = conn.execute("SELECT * FROM exclusion_rules WHERE id = ?", (rule_id,)).fetchone()
        return ExclusionRule.model_validate(dict(row))

    def delete_exclusion_rule(self, rule_id: int) -> None:
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM exclusion_rules WHERE id = ?", (rule_id,))
            if cur.rowcount == 0:
                raise NotFound(f"exclusion rule {rule_id} not found")

    # --- mapping rule admin ---

    def list_mapping_rules(self) -> List[MappingRule]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM software_mappings ORDER BY canonical_name, original_pattern").fetchall()
        return [MappingRule.model_validate(dict(r)) for r in rows]

    def _insert_mapping_rule(self, conn: sqlite3.Connection, rule: MappingRuleIn, created_by: str) -> int:
        cur = conn.execute(
            "INSERT INTO software_mappings "
            "(pattern_type, original_pattern, canonical_name, category, deployment_type, description, created_by) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                rule.pattern_type,
                rule.original_pattern,
                rule.canonical_name,
                rule.category,
                rule.deployment_type,
                rule.description,
                created_by,
            ),
        )
        return cur.lastrowid

    def create_mapping_rule(self, rule: MappingRuleIn, created_by: str = "admin") -> MappingRule:
        with self._connection() as conn:
            rule_id = self._insert_mapping_rule(conn, rule, created_by)
            row = conn.execute("SELECT * FROM software_mappings WHERE id = ?", (rule_id,)).fetchone()
        return MappingRule.model_validate(dict(row))

    def update_mapping_rule(self, rule_id: int, rule: MappingRuleUpdate) -> MappingRule:
        is_active = None if rule.is_active is None else int(rule.is_active)
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE software_mappings SET pattern_type = ?, original_pattern = ?, canonical_name = ?, "
                "category = ?, deployment_type = ?, description = ?, is_active = COALESCE(?, is_active), "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (
                    rule.pattern_type,
                    rule.original_pattern,
                    rule.canonical_name,
                    rule.category,
                    rule.deployment_type,
                    rule.description,
                    is_active,
                    rule_id,
                ),
            )
            if cur.rowcount == 0:
                raise NotFound(f"software mapping {rule_id} not found")
            row = conn.execute("SELECT * FROM software_mappings WHERE id = ?", (rule_id,)).fetchone()
        return MappingRule.model_validate(dict(row))

    def delete_mapping_rule(self, rule_id: int) -> None:
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM software_mappings WHERE id = ?", (rule_id,))
            if cur.rowcount == 0:
                raise NotFound(f"software mapping {rule_id} not found")

    def categories(self) -> List[str]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT category FROM exclusion_rules "
                "UNION SELECT category FROM software_mappings WHERE category IS NOT NULL"
            ).fetchall()
        return sorted({r[0] for r in rows if r[0] is not None})

    # --- DispositionStore ---

    def fetch_dispositions(self, canonical_names: Iterable[str]) -> List[DispositionRecord]:
        names = sorted(set(canonical_names))
        out: List[DispositionRecord] = []
        if not names:
            return out
        with self._connection(DispositionStoreError) as conn:
            for chunk in _chunks(names, _LOOKUP_CHUNK):
                placeholders = ", ".join("?" for _ in chunk)
                rows = conn.execute(
                    f"{_DISPOSITION_SELECT} WHERE dm.canonical_name IN ({placeholders})", chunk
                ).fetchall()
                out.extend(DispositionRecord.model_validate(dict(r)) for r in rows)
        return out

    def upsert_pending_disposition(self, canonical_name: str) -> DispositionRecord:
        with self._connection(DispositionStoreError) as conn:
            conn.execute(
                "INSERT INTO disposition_mappings (canonical_name, disposition, updated_by) "
                "VALUES (?, ?, 'system') ON CONFLICT (canonical_name) DO NOTHING",
                (canonical_name, DEFAULT_DISPOSITION),
            )
            row = conn.execute(
                f"{_DISPOSITION_SELECT} WHERE dm.canonical_name = ?", (canonical_name,)
            ).fetchone()
        if row is None:
            raise DispositionStoreError(f"disposition for {canonical_name!r} vanished after insert")
        return DispositionRecord.model_validate(dict(row))

    # --- disposition admin ---

    def list_dispositions(self) -> List[DispositionRecord]:
        with self._connection() as conn:
            rows = conn.execute(f"{_DISPOSITION_SELECT} ORDER BY dm.disposition, dm.canonical_name").fetchall()
        return [DispositionRecord.model_validate(dict(r)) for r in rows]

    def get_disposition(self, canonical_name: str) -> Optional[DispositionRecord]:
        with self._connection() as conn:
            row = conn.execute(f"{_DISPOSITION_SELECT} WHERE dm.canonical_name = ?", (canonical_name,)).fetchone()
        return DispositionRecord.model_validate(dict(row)) if row else None

    def _save_disposition(self, conn: sqlite3.Connection, item: DispositionIn) -> None:
        conn.execute(
            """
            INSERT INTO disposition_mappings (canonical_name, disposition, approved_software_id, notes, updated_by)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (canonical_name) DO UPDATE SET
                disposition = excluded.disposition,
                approved_software_id = excluded.approved_software_id,
                notes = excluded.notes,
                updated_by = excluded.updated_by,
                updated_at = CURRENT_TIMESTAMP
            """,
            (
                item.canonical_name,
                item.disposition,
                item.approved_software_id,
                item.notes,
                item.updated_by or "admin",
            ),
        )

    def save_disposition(self, item: DispositionIn) -> DispositionRecord:
        """Administrative create-or-overwrite of one disposition decision."""
        with self._connection() as conn:
            self._save_disposition(conn, item)
            row = conn.execute(
                f"{_DISPOSITION_SELECT} WHERE dm.canonical_name = ?", (item.canonical_name,)
            ).fetchone()
        return DispositionRecord.model_validate(dict(row))

    def save_dispositions(self, items: List[DispositionIn]) -> int:
        """Bulk variant of save_disposition; all or nothing."""
        with self._connection() as conn:
            for item in items:
                self._save_disposition(conn, item)
        return len(items)

    def delete_disposition(self, disposition_id: int) -> None:
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM disposition_mappings WHERE id = ?", (disposition_id,))
            if cur.rowcount == 0:
                raise NotFound(f"disposition {disposition_id} not found")

    # --- approved software ---

    def list_approved_software(self) -> List[ApprovedSoftware]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM approved_software WHERE is_active = 1 ORDER BY category, name"
            ).fetchall()
        return [ApprovedSoftware.model_validate(dict(r)) for r in rows]

    def create_approved_software(self, item: ApprovedSoftwareIn) -> ApprovedSoftware:
        with self._connection() as conn:
            cur = conn.execute(
                "INSERT INTO approved_software (name, category, vendor, notes) VALUES (?, ?, ?, ?)",
                (item.name, item.category, item.vendor, item.notes),
            )
            row = conn.execute("SELECT * FROM approved_software WHERE id = ?", (cur.lastrowid,)).fetchone()
        return ApprovedSoftware.model_validate(dict(row))

    def update_approved_software(self, item_id: int, item: ApprovedSoftwareUpdate) -> ApprovedSoftware:
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE approved_software SET name = ?, category = ?, vendor = ?, notes = ?, is_active = ?, "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (item.name, item.category, item.vendor, item.notes, int(item.is_active), item_id),
            )
            if cur.rowcount == 0:
                raise NotFound(f"approved software {item_id} not found")
            row = conn.execute("SELECT * FROM approved_software WHERE id = ?", (item_id,)).fetchone()
        return ApprovedSoftware.model_validate(dict(row))

    def delete_approved_software(self, item_id: int) -> None:
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM approved_software WHERE id = ?", (item_id,))
            if cur.rowcount == 0:
                raise NotFound(f"approved software {item_id} not found")

    # --- admin feedback ---

    def record_feedback(self, item: FeedbackIn) -> Feedback:
        """
        Store administrator feedback and apply it to the rule tables.

        exclude
          adds an exact exclusion rule in the "User Defined" category
        categorize
          adds an exact mapping rule when a canonical name is suggested
        include
          the mapping is created separately by the client; only marked applied
        """
        created_by = item.created_by or "admin"
        with self._connection() as conn:
            cur = conn.execute(
                "INSERT INTO admin_feedback (software_name, action_type, reason, suggested_category, "
                "suggested_canonical_name, suggested_deployment_type, created_by) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    item.software_name,
                    item.action_type,
                    item.reason,
                    item.suggested_category,
                    item.suggested_canonical_name,
                    item.suggested_deployment_type,
                    created_by,
                ),
            )
            feedback_id = cur.lastrowid
            applied = False

            if item.action_type == "exclude":
                rule = ExclusionRuleIn(
                    pattern_type="exact",
                    pattern_value=item.software_name,
                    category=USER_DEFINED_CATEGORY,
                    reason=item.reason,
                )
                self._insert_exclusion_rule(conn, rule, created_by)
                applied = True
            elif item.action_type == "categorize" and item.suggested_canonical_name:
                rule = MappingRuleIn(
                    pattern_type="exact",
                    original_pattern=item.software_name,
                    canonical_name=item.suggested_canonical_name,
                    category=item.suggested_category or DEFAULT_CATEGORY,
                    deployment_type=item.suggested_deployment_type or DEFAULT_DEPLOYMENT_TYPE,
                    description=item.reason,
                )
                self._insert_mapping_rule(conn, rule, created_by)
                applied = True
            elif item.action_type == "include":
                applied = True

            if applied:
                conn.execute("UPDATE admin_feedback SET applied_to_rules = 1 WHERE id = ?", (feedback_id,))
            row = conn.execute("SELECT * FROM admin_feedback WHERE id = ?", (feedback_id,)).fetchone()
        return Feedback.model_validate(dict(row))

    def list_feedback(self, limit: int = 100) -> List[Feedback]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM admin_feedback ORDER BY created_at DESC, id DESC LIMIT ?", (limit,)
            ).fetchall()
        return [Feedback.model_validate(dict(r)) for r in rows]

    # --- history ---

    def log_history(self, entry: HistoryEntry) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO analysis_history (upload_filename, agency_name, input_count, output_count, "
                "excluded_count, status, processed_at) VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)",
                (
                    entry.upload_filename,
                    entry.agency_name,
                    entry.input_count,
                    entry.output_count,
                    entry.excluded_count,
                    entry.status,
                ),
            )

    def count_history(self) -> int:
        with self._connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM analysis_history").fetchone()[0]

    # --- saved clients ---

    def list_clients(self) -> List[SavedClientSummary]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id, agency_name, source_filename, summary, notes, status, created_at, updated_at, "
                "created_by, updated_by FROM saved_clients ORDER BY updated_at DESC, id DESC"
            ).fetchall()
        return [SavedClientSummary.model_validate(_decode_client(r)) for r in rows]

    def get_client(self, client_id: int) -> SavedClient:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM saved_clients WHERE id = ?", (client_id,)).fetchone()
        if row is None:
            raise NotFound("Client not found")
        return SavedClient.model_validate(_decode_client(row))

    def create_client(self, item: SavedClientIn) -> SavedClient:
        with self._connection() as conn:
            cur = conn.execute(
                "INSERT INTO saved_clients (agency_name, analysis_data, source_filename, summary, notes, status) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    item.agency_name,
                    _encode_json(item.analysis_data),
                    item.source_filename,
                    _encode_json(item.summary),
                    item.notes,
                    item.status,
                ),
            )
            row = conn.execute("SELECT * FROM saved_clients WHERE id = ?", (cur.lastrowid,)).fetchone()
        return SavedClient.model_validate(_decode_client(row))

    def update_client(self, client_id: int, item: SavedClientUpdate) -> SavedClient:
        """Fields left as None keep their stored value; updated_by is always stamped."""
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE saved_clients SET agency_name = COALESCE(?, agency_name), "
                "analysis_data = COALESCE(?, analysis_data), summary = COALESCE(?, summary), "
                "notes = COALESCE(?, notes), status = COALESCE(?, status), updated_by = ?, "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (
                    item.agency_name,
                    _encode_json(item.analysis_data),
                    _encode_json(item.summary),
                    item.notes,
                    item.status,
                    item.updated_by or "admin",
                    client_id,
                ),
            )
            if cur.rowcount == 0:
                raise NotFound("Client not found")
            row = conn.execute("SELECT * FROM saved_clients WHERE id = ?", (client_id,)).fetchone()
        return SavedClient.model_validate(_decode_client(row))

    def delete_client(self, client_id: int) -> None:
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM saved_clients WHERE id = ?", (client_id,))
            if cur.rowcount == 0:
                raise NotFound("Client not found")


def _encode_json(value) -> Optional[str]:
    return None if value is None else json.dumps(value)


def _decode_client(row: sqlite3.Row) -> dict:
    data = dict(row)
    for key in ("analysis_data", "summary"):
        if data.get(key) is not None:
            data[key] = json.loads(data[key])
    return data
