"""SQLite-backed record store for subjects, documents and analyses.

Uses ``aiosqlite`` for async I/O.  Each row keeps the full Pydantic
snapshot as JSON in ``payload`` plus the handful of columns the queries
filter and sort on.  Snapshots are replaced wholesale on update, matching
the frozen-model ``model_copy`` style used by the services.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import aiosqlite
import structlog

from studylens.interfaces.record_store import IRecordStore
from studylens.models.analysis import Analysis
from studylens.models.document import Document, DocumentType, Subject
from studylens.models.status import ProcessingStatus
from studylens.utils.errors import NotFoundError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/studylens.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS subjects (
    id          TEXT PRIMARY KEY,
    owner_id    TEXT NOT NULL,
    payload     TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS documents (
    id             TEXT PRIMARY KEY,
    owner_id       TEXT NOT NULL,
    subject_id     TEXT NOT NULL,
    document_type  TEXT NOT NULL,
    status         TEXT NOT NULL,
    uploaded_at    TEXT NOT NULL,
    payload        TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS analyses (
    id          TEXT PRIMARY KEY,
    owner_id    TEXT NOT NULL,
    subject_id  TEXT NOT NULL,
    status      TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    expires_at  TEXT NOT NULL,
    payload     TEXT NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_owner_subject ON documents(owner_id, subject_id);",
    "CREATE INDEX IF NOT EXISTS idx_analyses_owner_subject ON analyses(owner_id, subject_id);",
    "CREATE INDEX IF NOT EXISTS idx_analyses_expires ON analyses(expires_at);",
]

_INSERT_DOCUMENT_SQL = """\
INSERT INTO documents (id, owner_id, subject_id, document_type, status, uploaded_at, payload)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""

_UPDATE_DOCUMENT_SQL = """\
UPDATE documents SET status = ?, payload = ? WHERE id = ?;
"""

_INSERT_ANALYSIS_SQL = """\
INSERT INTO analyses (id, owner_id, subject_id, status, created_at, expires_at, payload)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""

_UPDATE_ANALYSIS_SQL = """\
UPDATE analyses SET status = ?, payload = ? WHERE id = ?;
"""


class SQLiteRecordStore(IRecordStore):
    """SQLite-backed persistence for the three record types."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("record_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------

    async def create_subject(self, subject: Subject) -> Subject:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "INSERT INTO subjects (id, owner_id, payload) VALUES (?, ?, ?)",
                (subject.id, subject.owner_id, subject.model_dump_json()),
            )
            await db.commit()
        logger.info("subject_created", subject_id=subject.id, owner_id=subject.owner_id)
        return subject

    async def get_subject(self, subject_id: str) -> Subject | None:
        payload = await self._fetch_payload("subjects", subject_id)
        return Subject.model_validate_json(payload) if payload else None

    async def list_subjects(self, owner_id: str, include_inactive: bool = False) -> list[Subject]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT payload FROM subjects WHERE owner_id = ?", (owner_id,)
            )
            rows = await cursor.fetchall()
        subjects = [Subject.model_validate_json(row[0]) for row in rows]
        if not include_inactive:
            subjects = [s for s in subjects if s.is_active]
        return sorted(subjects, key=lambda s: s.created_at, reverse=True)

    async def update_subject(self, subject: Subject) -> Subject:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE subjects SET payload = ? WHERE id = ?",
                (subject.model_dump_json(), subject.id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise NotFoundError(message=f"Subject {subject.id} not found")
        return subject

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create_document(self, document: Document) -> Document:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _INSERT_DOCUMENT_SQL,
                (
                    document.id,
                    document.owner_id,
                    document.subject_id,
                    document.document_type.value,
                    document.status.value,
                    document.uploaded_at.isoformat(),
                    document.model_dump_json(),
                ),
            )
            await db.commit()
        return document

    async def get_document(self, document_id: str) -> Document | None:
        payload = await self._fetch_payload("documents", document_id)
        return Document.model_validate_json(payload) if payload else None

    async def update_document(self, document: Document) -> Document:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                _UPDATE_DOCUMENT_SQL,
                (document.status.value, document.model_dump_json(), document.id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise NotFoundError(message=f"Document {document.id} not found")
        return document

    async def list_documents(
        self,
        owner_id: str,
        subject_id: str | None = None,
        document_type: DocumentType | None = None,
        status: ProcessingStatus | None = None,
    ) -> list[Document]:
        clauses = ["owner_id = ?"]
        params: list[str] = [owner_id]
        if subject_id:
            clauses.append("subject_id = ?")
            params.append(subject_id)
        if document_type:
            clauses.append("document_type = ?")
            params.append(DocumentType(document_type).value)
        if status:
            clauses.append("status = ?")
            params.append(ProcessingStatus(status).value)

        sql = (
            "SELECT payload FROM documents WHERE "
            + " AND ".join(clauses)
            + " ORDER BY uploaded_at DESC"
        )
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [Document.model_validate_json(row[0]) for row in rows]

    async def count_documents_by_type(
        self, owner_id: str, subject_id: str | None = None
    ) -> dict[str, int]:
        sql = "SELECT document_type, COUNT(*) FROM documents WHERE owner_id = ?"
        params: list[str] = [owner_id]
        if subject_id:
            sql += " AND subject_id = ?"
            params.append(subject_id)
        sql += " GROUP BY document_type"
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}

    async def delete_document(self, document_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM documents WHERE id = ?", (document_id,))
            await db.commit()
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Analyses
    # ------------------------------------------------------------------

    async def create_analysis(self, analysis: Analysis) -> Analysis:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _INSERT_ANALYSIS_SQL,
                (
                    analysis.id,
                    analysis.owner_id,
                    analysis.subject_id,
                    analysis.status.value,
                    analysis.created_at.isoformat(),
                    analysis.expires_at.isoformat(),
                    analysis.model_dump_json(),
                ),
            )
            await db.commit()
        return analysis

    async def get_analysis(self, analysis_id: str) -> Analysis | None:
        payload = await self._fetch_payload("analyses", analysis_id)
        return Analysis.model_validate_json(payload) if payload else None

    async def update_analysis(self, analysis: Analysis) -> Analysis:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                _UPDATE_ANALYSIS_SQL,
                (analysis.status.value, analysis.model_dump_json(), analysis.id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise NotFoundError(message=f"Analysis {analysis.id} not found")
        return analysis

    async def list_analyses(
        self, owner_id: str, subject_id: str | None = None, limit: int = 20
    ) -> list[Analysis]:
        sql = "SELECT payload FROM analyses WHERE owner_id = ?"
        params: list[str | int] = [owner_id]
        if subject_id:
            sql += " AND subject_id = ?"
            params.append(subject_id)
        sql += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [Analysis.model_validate_json(row[0]) for row in rows]

    async def delete_expired_analyses(self, now: datetime) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "DELETE FROM analyses WHERE expires_at < ?", (now.isoformat(),)
            )
            await db.commit()
            deleted = cursor.rowcount
        logger.info("expired_analyses_purged", deleted=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fetch_payload(self, table: str, record_id: str) -> str | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"SELECT payload FROM {table} WHERE id = ?",  # noqa: S608 - table is internal
                (record_id,),
            )
            row = await cursor.fetchone()
        return row[0] if row else None
