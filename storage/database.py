"""
SQLite-backed store for projects, recording sessions, steps, screenshots,
generated documents, masking profiles and VLM provider settings.
"""
import json
import logging
import re
import sqlite3
import threading
import uuid
from contextlib import closing
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from storage.models import (
    GeneratedDocument,
    LLMProviderSetting,
    MaskingProfile,
    MaskingRule,
    Project,
    Screenshot,
    Session,
    Step,
)

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    """Raised when a stored entity (project, session, step, document, ...) is missing"""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    template_type TEXT NOT NULL DEFAULT 'both',
    masking_profile_id TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    title TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'idle',
    target_url TEXT NOT NULL DEFAULT '',
    started_at TEXT,
    ended_at TEXT,
    generated_doc_id TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sessions_project ON sessions(project_id);
CREATE TABLE IF NOT EXISTS steps (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    step_index INTEGER NOT NULL,
    timestamp INTEGER NOT NULL DEFAULT 0,
    action TEXT NOT NULL,
    target_selector TEXT NOT NULL DEFAULT '',
    target_xpath TEXT NOT NULL DEFAULT '',
    target_element TEXT NOT NULL DEFAULT '',
    aria_label TEXT NOT NULL DEFAULT '',
    masked_text TEXT NOT NULL DEFAULT '',
    input_value TEXT NOT NULL DEFAULT '',
    page_url TEXT NOT NULL DEFAULT '',
    page_title TEXT NOT NULL DEFAULT '',
    screenshot_id TEXT NOT NULL DEFAULT '',
    ai_description TEXT NOT NULL DEFAULT '',
    ai_notes TEXT NOT NULL DEFAULT '',
    is_edited INTEGER NOT NULL DEFAULT 0,
    is_masked INTEGER NOT NULL DEFAULT 0,
    dom_fingerprint TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_steps_session ON steps(session_id, step_index);
CREATE TABLE IF NOT EXISTS screenshots (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    step_id TEXT NOT NULL,
    captured_at INTEGER NOT NULL DEFAULT 0,
    data_url TEXT NOT NULL,
    width INTEGER NOT NULL DEFAULT 0,
    height INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_screenshots_session ON screenshots(session_id);
CREATE TABLE IF NOT EXISTS masking_profiles (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS masking_rules (
    id TEXT PRIMARY KEY,
    profile_id TEXT NOT NULL,
    rule_type TEXT NOT NULL,
    pattern TEXT NOT NULL,
    alias TEXT NOT NULL,
    scope TEXT NOT NULL DEFAULT 'session',
    is_active INTEGER NOT NULL DEFAULT 1,
    description TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_masking_rules_profile ON masking_rules(profile_id);
CREATE TABLE IF NOT EXISTS generated_documents (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    project_id TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'draft',
    business_view TEXT NOT NULL,
    technical_view TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS llm_providers (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    api_key TEXT NOT NULL DEFAULT '',
    base_url TEXT NOT NULL DEFAULT '',
    model TEXT NOT NULL DEFAULT '',
    is_default INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

STEP_FIELDS = (
    'timestamp', 'action', 'target_selector', 'target_xpath', 'target_element',
    'aria_label', 'masked_text', 'input_value', 'page_url', 'page_title',
    'is_masked', 'dom_fingerprint',
)


def _now() -> str:
    return datetime.now().isoformat(timespec='seconds')


def _new_id() -> str:
    return str(uuid.uuid4())


def _check_masking_rule(rule_type: str, pattern: str, alias: str) -> None:
    if not (rule_type and pattern and alias):
        raise ValueError("rule_type, pattern and alias are required")
    if rule_type == 'regex':
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid regex pattern: {e}") from e


class StepStore:
    """
    Durable store for the recording domain.

    A single connection is shared between Flask request threads and
    generation workers; every statement runs under one re-entrant lock so
    writes to the same session or step row are serialized.
    """

    def __init__(self, db_path: str = ':memory:'):
        self.db_path = str(db_path)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._ensure_schema()
        logger.info(f"[STORE] Step store opened at {self.db_path}")

    def _ensure_schema(self) -> None:
        with self._lock:
            self.conn.executescript(SCHEMA)
            self.conn.commit()

    def _execute(self, sql: str, params: Iterable[Any] = ()) -> int:
        with self._lock, closing(self.conn.cursor()) as cur:
            cur.execute(sql, tuple(params))
            self.conn.commit()
            return cur.rowcount

    def _fetchone(self, sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        with self._lock, closing(self.conn.cursor()) as cur:
            cur.execute(sql, tuple(params))
            return cur.fetchone()

    def _fetchall(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        with self._lock, closing(self.conn.cursor()) as cur:
            cur.execute(sql, tuple(params))
            return cur.fetchall()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------
    def create_project(
        self,
        name: str,
        description: str = '',
        template_type: str = 'both',
        masking_profile_id: str = ''
    ) -> Project:
        now = _now()
        project = Project(
            id=_new_id(),
            name=name,
            description=description,
            template_type=template_type or 'both',
            masking_profile_id=masking_profile_id,
            created_at=now,
            updated_at=now,
        )
        self._execute(
            "INSERT INTO projects (id, name, description, template_type, masking_profile_id, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (project.id, project.name, project.description, project.template_type,
             project.masking_profile_id, now, now),
        )
        logger.info(f"[STORE] Created project {project.id}: {name}")
        return project

    def get_project(self, project_id: str, with_sessions: bool = False) -> Project:
        row = self._fetchone("SELECT * FROM projects WHERE id = ?", (project_id,))
        if row is None:
            raise NotFoundError('project', project_id)
        project = self._row_to_project(row)
        if with_sessions:
            project.sessions = self.list_sessions(project_id=project_id)
        return project

    def find_project(self, project_id: str) -> Optional[Project]:
        try:
            return self.get_project(project_id)
        except NotFoundError:
            return None

    def list_projects(self) -> List[Project]:
        rows = self._fetchall("SELECT * FROM projects ORDER BY created_at")
        projects = [self._row_to_project(row) for row in rows]
        for project in projects:
            project.sessions = self.list_sessions(project_id=project.id)
        return projects

    def delete_project(self, project_id: str) -> None:
        self._execute("DELETE FROM projects WHERE id = ?", (project_id,))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def create_session(
        self,
        project_id: str,
        title: str,
        target_url: str = '',
        status: str = 'recording'
    ) -> Session:
        now = _now()
        session = Session(
            id=_new_id(),
            project_id=project_id,
            title=title,
            status=status,
            target_url=target_url,
            started_at=now,
            created_at=now,
            updated_at=now,
        )
        self._execute(
            "INSERT INTO sessions (id, project_id, title, status, target_url, started_at, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (session.id, project_id, title, status, target_url, now, now, now),
        )
        logger.info(f"[STORE] Created session {session.id}: {title}")
        return session

    def get_session(self, session_id: str) -> Session:
        row = self._fetchone("SELECT * FROM sessions WHERE id = ?", (session_id,))
        if row is None:
            raise NotFoundError('session', session_id)
        session = self._row_to_session(row)
        session.step_count = self.count_steps(session_id)
        return session

    def list_sessions(self, project_id: Optional[str] = None) -> List[Session]:
        if project_id:
            rows = self._fetchall(
                "SELECT * FROM sessions WHERE project_id = ? ORDER BY created_at DESC, rowid DESC",
                (project_id,),
            )
        else:
            rows = self._fetchall("SELECT * FROM sessions ORDER BY created_at DESC, rowid DESC")
        sessions = [self._row_to_session(row) for row in rows]
        for session in sessions:
            session.step_count = self.count_steps(session.id)
        return sessions

    def update_session_status(self, session_id: str, status: str) -> Session:
        session = self.get_session(session_id)
        now = _now()
        if status == 'completed':
            self._execute(
                "UPDATE sessions SET status = ?, ended_at = ?, updated_at = ? WHERE id = ?",
                (status, now, now, session_id),
            )
            session.ended_at = now
        else:
            self._execute(
                "UPDATE sessions SET status = ?, updated_at = ? WHERE id = ?",
                (status, now, session_id),
            )
        session.status = status
        session.updated_at = now
        return session

    def find_session_by_document(self, doc_id: str) -> Session:
        row = self._fetchone("SELECT * FROM sessions WHERE generated_doc_id = ?", (doc_id,))
        if row is None:
            raise NotFoundError('document', doc_id)
        return self._row_to_session(row)

    def delete_session(self, session_id: str) -> None:
        """Delete a session together with its steps, screenshots and documents"""
        with self._lock:
            self._execute("DELETE FROM steps WHERE session_id = ?", (session_id,))
            self._execute("DELETE FROM screenshots WHERE session_id = ?", (session_id,))
            self._execute("DELETE FROM generated_documents WHERE session_id = ?", (session_id,))
            self._execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        logger.info(f"[STORE] Deleted session {session_id}")

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def count_steps(self, session_id: str) -> int:
        row = self._fetchone("SELECT COUNT(*) AS n FROM steps WHERE session_id = ?", (session_id,))
        return int(row['n']) if row else 0

    def last_step_index(self, session_id: str) -> int:
        row = self._fetchone("SELECT MAX(step_index) AS n FROM steps WHERE session_id = ?", (session_id,))
        return int(row['n'] or 0) if row else 0

    def add_step(self, session_id: str, action: str, step_index: int = 0, **fields: Any) -> Step:
        """
        Append a captured step to a session.

        Args:
            session_id: Owning session
            action: Action kind (click, input, select, navigation, ...)
            step_index: 1-based index; 0 means "one past the highest index so far"
            **fields: Any other Step column listed in STEP_FIELDS

        Returns:
            The stored Step

        Raises:
            ValueError: On unknown fields, or an explicit index not above the session's last one
        """
        unknown = set(fields) - set(STEP_FIELDS)
        if unknown:
            raise ValueError(f"Unknown step fields: {', '.join(sorted(unknown))}")

        now = _now()
        with self._lock:
            last_index = self.last_step_index(session_id)
            if not step_index:
                step_index = last_index + 1
            elif step_index <= last_index:
                raise ValueError(f"step_index {step_index} must be greater than {last_index}")

            step = Step(id=_new_id(), session_id=session_id, step_index=step_index, action=action,
                        created_at=now, updated_at=now)
            for name, value in fields.items():
                setattr(step, name, value if value is not None else getattr(step, name))

            self._execute(
                "INSERT INTO steps (id, session_id, step_index, timestamp, action, target_selector, target_xpath, "
                "target_element, aria_label, masked_text, input_value, page_url, page_title, is_masked, "
                "dom_fingerprint, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (step.id, session_id, step.step_index, int(step.timestamp or 0), action, step.target_selector,
                 step.target_xpath, step.target_element, step.aria_label, step.masked_text, step.input_value,
                 step.page_url, step.page_title, int(bool(step.is_masked)), step.dom_fingerprint, now, now),
            )
        logger.debug(f"[STORE] Added step {step.step_index} ({action}) to session {session_id}")
        return step

    def get_step(self, step_id: str) -> Step:
        row = self._fetchone("SELECT * FROM steps WHERE id = ?", (step_id,))
        if row is None:
            raise NotFoundError('step', step_id)
        return self._row_to_step(row)

    def list_steps(self, session_id: str) -> List[Step]:
        rows = self._fetchall(
            "SELECT * FROM steps WHERE session_id = ? ORDER BY step_index, rowid",
            (session_id,),
        )
        return [self._row_to_step(row) for row in rows]

    def update_step_description(self, step_id: str, description: str) -> None:
        updated = self._execute(
            "UPDATE steps SET ai_description = ?, updated_at = ? WHERE id = ?",
            (description, _now(), step_id),
        )
        if not updated:
            raise NotFoundError('step', step_id)

    def update_step(
        self,
        step_id: str,
        ai_description: Optional[str] = None,
        is_edited: Optional[bool] = None
    ) -> None:
        """Apply the editable fields of a step; empty descriptions are ignored"""
        assignments = []
        params: List[Any] = []
        if ai_description:
            assignments.append("ai_description = ?")
            params.append(ai_description)
        if is_edited is not None:
            assignments.append("is_edited = ?")
            params.append(int(bool(is_edited)))
        if not assignments:
            return
        assignments.append("updated_at = ?")
        params.extend([_now(), step_id])
        self._execute(f"UPDATE steps SET {', '.join(assignments)} WHERE id = ?", params)

    # ------------------------------------------------------------------
    # Screenshots
    # ------------------------------------------------------------------
    def add_screenshot(
        self,
        session_id: str,
        step_id: str,
        data_url: str,
        captured_at: int = 0,
        width: int = 0,
        height: int = 0
    ) -> Screenshot:
        """Store a (redacted) screenshot and link it to its step"""
        screenshot = Screenshot(
            id=_new_id(),
            session_id=session_id,
            step_id=step_id,
            data_url=data_url,
            captured_at=int(captured_at or 0),
            width=int(width or 0),
            height=int(height or 0),
            created_at=_now(),
        )
        with self._lock:
            self._execute(
                "INSERT INTO screenshots (id, session_id, step_id, captured_at, data_url, width, height, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (screenshot.id, session_id, step_id, screenshot.captured_at, data_url,
                 screenshot.width, screenshot.height, screenshot.created_at),
            )
            self._execute("UPDATE steps SET screenshot_id = ? WHERE id = ?", (screenshot.id, step_id))
        return screenshot

    def get_screenshot(self, screenshot_id: str) -> Screenshot:
        row = self._fetchone("SELECT * FROM screenshots WHERE id = ?", (screenshot_id,))
        if row is None:
            raise NotFoundError('screenshot', screenshot_id)
        return self._row_to_screenshot(row)

    def screenshots_by_step(self, session_id: str) -> Dict[str, Screenshot]:
        rows = self._fetchall("SELECT * FROM screenshots WHERE session_id = ?", (session_id,))
        return {row['step_id']: self._row_to_screenshot(row) for row in rows}

    # ------------------------------------------------------------------
    # Generated documents
    # ------------------------------------------------------------------
    def save_document(
        self,
        session_id: str,
        business_view: List[Dict[str, Any]],
        technical_view: List[Dict[str, Any]]
    ) -> GeneratedDocument:
        """
        Persist a document snapshot and point the session at it.
        Previous documents of the session are kept.
        """
        session = self.get_session(session_id)
        now = _now()
        document = GeneratedDocument(
            id=_new_id(),
            session_id=session_id,
            project_id=session.project_id,
            status='draft',
            business_view=json.dumps(business_view, ensure_ascii=False),
            technical_view=json.dumps(technical_view, ensure_ascii=False),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._execute(
                "INSERT INTO generated_documents (id, session_id, project_id, status, business_view, technical_view, "
                "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (document.id, session_id, document.project_id, document.status, document.business_view,
                 document.technical_view, now, now),
            )
            self._execute(
                "UPDATE sessions SET generated_doc_id = ?, updated_at = ? WHERE id = ?",
                (document.id, now, session_id),
            )
        logger.info(f"[STORE] Saved document {document.id} for session {session_id}")
        return document

    def get_document(self, doc_id: str) -> GeneratedDocument:
        row = self._fetchone("SELECT * FROM generated_documents WHERE id = ?", (doc_id,))
        if row is None:
            raise NotFoundError('document', doc_id)
        return GeneratedDocument(**dict(row))

    # ------------------------------------------------------------------
    # Masking profiles
    # ------------------------------------------------------------------
    def create_masking_profile(self, name: str, rules: Iterable[Dict[str, Any]] = ()) -> MaskingProfile:
        """
        Create a masking profile, optionally with its initial rules.

        Args:
            name: Profile name
            rules: Dicts with rule_type, pattern, alias and optional scope/description

        Returns:
            The stored profile with its rules
        """
        rules = list(rules)
        for rule in rules:
            _check_masking_rule(rule.get('rule_type', ''), rule.get('pattern', ''), rule.get('alias', ''))

        now = _now()
        profile_id = _new_id()
        with self._lock:
            self._execute(
                "INSERT INTO masking_profiles (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (profile_id, name, now, now),
            )
            for rule in rules:
                self.add_masking_rule(
                    profile_id,
                    rule.get('rule_type', ''),
                    rule.get('pattern', ''),
                    rule.get('alias', ''),
                    scope=rule.get('scope') or 'session',
                    description=rule.get('description') or '',
                )
        logger.info(f"[STORE] Created masking profile {profile_id}: {name}")
        return self.get_masking_profile(profile_id)

    def get_masking_profile(self, profile_id: str) -> MaskingProfile:
        row = self._fetchone("SELECT * FROM masking_profiles WHERE id = ?", (profile_id,))
        if row is None:
            raise NotFoundError('masking profile', profile_id)
        profile = MaskingProfile(**dict(row))
        profile.rules = self.list_masking_rules(profile_id)
        return profile

    def list_masking_profiles(self) -> List[MaskingProfile]:
        rows = self._fetchall("SELECT * FROM masking_profiles ORDER BY created_at, rowid")
        profiles = [MaskingProfile(**dict(row)) for row in rows]
        for profile in profiles:
            profile.rules = self.list_masking_rules(profile.id)
        return profiles

    def list_masking_rules(self, profile_id: str) -> List[MaskingRule]:
        rows = self._fetchall(
            "SELECT * FROM masking_rules WHERE profile_id = ? ORDER BY created_at, rowid",
            (profile_id,),
        )
        return [self._row_to_masking_rule(row) for row in rows]

    def add_masking_rule(
        self,
        profile_id: str,
        rule_type: str,
        pattern: str,
        alias: str,
        scope: str = 'session',
        description: str = ''
    ) -> MaskingRule:
        """
        Add an active rule to a profile.

        Raises:
            NotFoundError: If the profile does not exist
            ValueError: If a required field is empty or a regex pattern does not compile
        """
        _check_masking_rule(rule_type, pattern, alias)

        now = _now()
        rule = MaskingRule(
            id=_new_id(),
            profile_id=profile_id,
            rule_type=rule_type,
            pattern=pattern,
            alias=alias,
            scope=scope or 'session',
            description=description,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            if self._fetchone("SELECT id FROM masking_profiles WHERE id = ?", (profile_id,)) is None:
                raise NotFoundError('masking profile', profile_id)
            self._execute(
                "INSERT INTO masking_rules (id, profile_id, rule_type, pattern, alias, scope, is_active, "
                "description, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?, ?)",
                (rule.id, profile_id, rule_type, pattern, alias, rule.scope, description, now, now),
            )
        logger.debug(f"[STORE] Added {rule_type} masking rule {alias} to profile {profile_id}")
        return rule

    # ------------------------------------------------------------------
    # LLM provider settings
    # ------------------------------------------------------------------
    def list_llm_providers(self) -> List[LLMProviderSetting]:
        rows = self._fetchall("SELECT * FROM llm_providers ORDER BY created_at, name")
        return [self._row_to_provider(row) for row in rows]

    def get_active_llm_provider(self, name: str) -> Optional[LLMProviderSetting]:
        row = self._fetchone(
            "SELECT * FROM llm_providers WHERE name = ? AND is_active = 1",
            (name,),
        )
        return self._row_to_provider(row) if row else None

    def upsert_llm_provider(
        self,
        name: str,
        api_key: str = '',
        base_url: str = '',
        model: str = '',
        is_default: bool = False
    ) -> LLMProviderSetting:
        """
        Create or update a provider setting by name.
        Empty fields never overwrite stored values.
        """
        now = _now()
        with self._lock:
            row = self._fetchone("SELECT * FROM llm_providers WHERE name = ?", (name,))
            if row is None:
                provider_id = _new_id()
                self._execute(
                    "INSERT INTO llm_providers (id, name, api_key, base_url, model, is_default, is_active, "
                    "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?)",
                    (provider_id, name, api_key, base_url, model, int(is_default), now, now),
                )
            else:
                provider_id = row['id']
                assignments = ["is_default = ?", "is_active = 1", "updated_at = ?"]
                params: List[Any] = [int(is_default), now]
                for column, value in (('api_key', api_key), ('base_url', base_url), ('model', model)):
                    if value:
                        assignments.append(f"{column} = ?")
                        params.append(value)
                params.append(provider_id)
                self._execute(f"UPDATE llm_providers SET {', '.join(assignments)} WHERE id = ?", params)

            if is_default:
                self._execute("UPDATE llm_providers SET is_default = 0 WHERE name != ?", (name,))

            row = self._fetchone("SELECT * FROM llm_providers WHERE id = ?", (provider_id,))
        logger.info(f"[STORE] Saved LLM provider setting: {name}")
        return self._row_to_provider(row)

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------
    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> Project:
        return Project(**dict(row))

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> Session:
        return Session(**dict(row))

    @staticmethod
    def _row_to_step(row: sqlite3.Row) -> Step:
        data = dict(row)
        data['is_edited'] = bool(data['is_edited'])
        data['is_masked'] = bool(data['is_masked'])
        return Step(**data)

    @staticmethod
    def _row_to_screenshot(row: sqlite3.Row) -> Screenshot:
        return Screenshot(**dict(row))

    @staticmethod
    def _row_to_masking_rule(row: sqlite3.Row) -> MaskingRule:
        data = dict(row)
        data['is_active'] = bool(data['is_active'])
        return MaskingRule(**data)

    @staticmethod
    def _row_to_provider(row: sqlite3.Row) -> LLMProviderSetting:
        data = dict(row)
        data['is_default'] = bool(data['is_default'])
        data['is_active'] = bool(data['is_active'])
        return LLMProviderSetting(**data)

    def close(self) -> None:
        self.conn.close()
