"""
Database module for IdeaPile.

SQLite storage for ideas and their AI expansions. Every public method runs as
a single transaction and commits before returning.
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator

from ideapile import __version__
from ideapile.config import get_db_path
from ideapile.errors import NotFoundError, ValidationError
from ideapile.ingress import generate_id, normalize_tags, sanitize_text
from ideapile.models import Enrichment, EnrichmentKind, Idea

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Core ideas table
-- tags and connections are JSON arrays; never read them outside this module.
CREATE TABLE IF NOT EXISTS ideas (
    id TEXT PRIMARY KEY,
    content TEXT NOT NULL,
    timestamp INTEGER NOT NULL,             -- Unix epoch ms, immutable
    tags TEXT NOT NULL DEFAULT '[]',
    is_favorite INTEGER NOT NULL DEFAULT 0,
    connections TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL,               -- ISO 8601
    updated_at TEXT NOT NULL
);

-- AI expansions
-- TYPE CONSTRAINT: Only 4 kinds. Tagging and linking are not persisted kinds.
CREATE TABLE IF NOT EXISTS ai_expansions (
    id TEXT PRIMARY KEY,
    idea_id TEXT NOT NULL REFERENCES ideas(id) ON DELETE CASCADE,
    type TEXT NOT NULL CHECK(type IN ('expand', 'combine', 'suggest', 'inspire')),
    content TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    related_ideas TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_ideas_timestamp ON ideas(timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_ideas_favorite ON ideas(is_favorite);
CREATE INDEX IF NOT EXISTS idx_ai_expansions_idea_id ON ai_expansions(idea_id);
"""


def _to_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _from_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _dump_ids(ids: Iterable[str]) -> str:
    return json.dumps(list(ids))


def _load_ids(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [str(item) for item in json.loads(raw)]


def _dedupe(ids: Iterable[str], exclude: str | None = None) -> list[str]:
    seen: dict[str, None] = {}
    for item in ids:
        if item and item != exclude:
            seen.setdefault(item, None)
    return list(seen)


class Database:
    """SQLite database wrapper for IdeaPile."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()
        # One operation at a time per process; sqlite connections are per call.
        self._lock = threading.RLock()
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Ensure database exists and schema is current."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,)
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        with self._lock:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    # Row mapping

    def _row_to_idea(self, row: sqlite3.Row, expansions: list[Enrichment] | None = None) -> Idea:
        return Idea(
            id=row["id"],
            content=row["content"],
            timestamp=_from_millis(row["timestamp"]),
            tags=_load_ids(row["tags"]),
            is_favorite=bool(row["is_favorite"]),
            connections=_load_ids(row["connections"]),
            ai_expansions=expansions or [],
        )

    def _row_to_enrichment(self, row: sqlite3.Row) -> Enrichment:
        return Enrichment(
            id=row["id"],
            idea_id=row["idea_id"],
            kind=EnrichmentKind(row["type"]),
            content=row["content"],
            timestamp=_from_millis(row["timestamp"]),
            related_ideas=_load_ids(row["related_ideas"]),
        )

    def _fetch_idea_row(self, conn: sqlite3.Connection, idea_id: str) -> sqlite3.Row | None:
        return conn.execute("SELECT * FROM ideas WHERE id = ?", (idea_id,)).fetchone()

    def _require_idea_row(self, conn: sqlite3.Connection, idea_id: str) -> sqlite3.Row:
        row = self._fetch_idea_row(conn, idea_id)
        if row is None:
            raise NotFoundError(f"Idea not found: {idea_id}", details={"id": idea_id})
        return row

    def _expansions_for(self, conn: sqlite3.Connection, idea_id: str) -> list[Enrichment]:
        rows = conn.execute("""
            SELECT * FROM ai_expansions
            WHERE idea_id = ?
            ORDER BY timestamp DESC, rowid DESC
        """, (idea_id,)).fetchall()
        return [self._row_to_enrichment(row) for row in rows]

    def _rows_to_ideas(self, conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[Idea]:
        return [self._row_to_idea(row, self._expansions_for(conn, row["id"])) for row in rows]

    def _write_connections(self, conn: sqlite3.Connection, idea_id: str, connections: list[str]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        conn.execute(
            "UPDATE ideas SET connections = ?, updated_at = ? WHERE id = ?",
            (_dump_ids(connections), now, idea_id),
        )

    def _add_peer(self, conn: sqlite3.Connection, idea_id: str, peer_id: str) -> None:
        """Record peer_id on idea_id's side only."""
        conns = _load_ids(self._require_idea_row(conn, idea_id)["connections"])
        if peer_id not in conns:
            self._write_connections(conn, idea_id, conns + [peer_id])

    def _remove_peer(self, conn: sqlite3.Connection, idea_id: str, peer_id: str) -> None:
        """Drop peer_id from idea_id's side only. Missing rows are ignored."""
        row = self._fetch_idea_row(conn, idea_id)
        if row is None:
            return
        conns = _load_ids(row["connections"])
        if peer_id in conns:
            self._write_connections(conn, idea_id, [i for i in conns if i != peer_id])

    # Ideas

    def create(self, content: str, tags: Iterable[str] | None = None) -> Idea:
        """Create and persist a new idea. Raises ValidationError on blank content."""
        clean = sanitize_text(content or "")
        if not clean:
            raise ValidationError("Idea content cannot be empty")

        now = datetime.now(timezone.utc)
        idea = Idea(
            id=generate_id(),
            content=clean,
            timestamp=_from_millis(_to_millis(now)),
            tags=normalize_tags(tags),
        )

        with self._connect() as conn:
            conn.execute("""
                INSERT INTO ideas (
                    id, content, timestamp, tags, is_favorite,
                    connections, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                idea.id,
                idea.content,
                _to_millis(idea.timestamp),
                _dump_ids(idea.tags),
                0,
                "[]",
                now.isoformat(),
                now.isoformat(),
            ))

        logger.info("Idea created: %s", idea.id)
        return idea

    def get_by_id(self, idea_id: str) -> Idea | None:
        """Get a single idea by ID, with its expansions inlined."""
        with self._connect() as conn:
            row = self._fetch_idea_row(conn, idea_id)
            if row:
                return self._row_to_idea(row, self._expansions_for(conn, idea_id))
        return None

    def list_all(self) -> list[Idea]:
        """All ideas, most recent first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM ideas ORDER BY timestamp DESC, rowid DESC"
            ).fetchall()
            return self._rows_to_ideas(conn, rows)

    def update(self, idea: Idea) -> Idea:
        """
        Replace content, tags, favorite flag and connections of an idea.

        id and timestamp are taken from the stored row, never from the
        argument. Peers added to or removed from connections are updated in
        the same transaction; an unknown peer raises NotFoundError and
        nothing is written. Returns the idea as stored.
        """
        content = sanitize_text(idea.content or "")
        if not content:
            raise ValidationError("Idea content cannot be empty")

        tags = normalize_tags(idea.tags)
        connections = _dedupe(idea.connections, exclude=idea.id)
        now = datetime.now(timezone.utc).isoformat()

        with self._connect() as conn:
            row = self._require_idea_row(conn, idea.id)
            previous = _load_ids(row["connections"])

            for peer_id in connections:
                if peer_id not in previous:
                    self._add_peer(conn, peer_id, idea.id)
            for peer_id in previous:
                if peer_id not in connections:
                    self._remove_peer(conn, peer_id, idea.id)

            conn.execute("""
                UPDATE ideas
                SET content = ?, tags = ?, is_favorite = ?, connections = ?, updated_at = ?
                WHERE id = ?
            """, (
                content,
                _dump_ids(tags),
                1 if idea.is_favorite else 0,
                _dump_ids(connections),
                now,
                idea.id,
            ))
            row = self._require_idea_row(conn, idea.id)
            stored = self._row_to_idea(row, self._expansions_for(conn, idea.id))

        logger.info("Idea updated: %s", idea.id)
        return stored

    def delete(self, idea_id: str) -> None:
        """
        Delete an idea.

        Its expansions go with it (ON DELETE CASCADE) and its id is pruned
        from every peer's connections so the relation stays symmetric.
        """
        with self._connect() as conn:
            row = self._require_idea_row(conn, idea_id)
            for peer_id in _load_ids(row["connections"]):
                self._remove_peer(conn, peer_id, idea_id)

            # Peers that point at us without being listed back
            stragglers = conn.execute(
                "SELECT id, connections FROM ideas WHERE id != ? AND connections LIKE ?",
                (idea_id, f'%"{idea_id}"%'),
            ).fetchall()
            for peer in stragglers:
                remaining = [i for i in _load_ids(peer["connections"]) if i != idea_id]
                self._write_connections(conn, peer["id"], remaining)

            conn.execute("DELETE FROM ideas WHERE id = ?", (idea_id,))

        logger.info("Idea deleted: %s", idea_id)

    def toggle_favorite(self, idea_id: str) -> Idea:
        """Flip is_favorite. Returns the updated idea."""
        now = datetime.now(timezone.utc).isoformat()

        with self._connect() as conn:
            row = self._require_idea_row(conn, idea_id)
            conn.execute(
                "UPDATE ideas SET is_favorite = ?, updated_at = ? WHERE id = ?",
                (0 if row["is_favorite"] else 1, now, idea_id),
            )
            row = self._require_idea_row(conn, idea_id)
            idea = self._row_to_idea(row, self._expansions_for(conn, idea_id))

        logger.debug("Favorite toggled for %s -> %s", idea_id, idea.is_favorite)
        return idea

    def search(self, query: str) -> list[Idea]:
        """
        Case-insensitive substring search over content and tags.

        A blank query returns the full listing.
        """
        needle = (query or "").strip().lower()
        if not needle:
            return self.list_all()

        # Match per tag, never against the stored JSON text
        return [
            idea for idea in self.list_all()
            if needle in idea.content.lower()
            or any(needle in tag for tag in idea.tags)
        ]

    # Connections

    def connect(self, id_a: str, id_b: str) -> None:
        """Symmetrically connect two ideas. No-op if already connected."""
        if id_a == id_b:
            raise ValidationError("An idea cannot be connected to itself", details={"id": id_a})

        with self._connect() as conn:
            self._require_idea_row(conn, id_b)
            self._add_peer(conn, id_a, id_b)
            self._add_peer(conn, id_b, id_a)

        logger.info("Ideas connected: %s <-> %s", id_a, id_b)

    def disconnect(self, id_a: str, id_b: str) -> None:
        """Symmetrically remove a connection. No-op if not connected."""
        with self._connect() as conn:
            self._require_idea_row(conn, id_a)
            self._require_idea_row(conn, id_b)
            self._remove_peer(conn, id_a, id_b)
            self._remove_peer(conn, id_b, id_a)

        logger.info("Ideas disconnected: %s <-> %s", id_a, id_b)

    # AI expansions

    def add_enrichment(
        self,
        idea_id: str,
        kind: EnrichmentKind | str,
        content: str,
        related_ideas: Iterable[str] | None = None,
    ) -> Enrichment:
        """Attach an AI expansion to an existing idea."""
        try:
            kind = EnrichmentKind(kind)
        except ValueError:
            raise ValidationError(f"Invalid enrichment kind: {kind}") from None

        text = (content or "").strip()
        if not text:
            raise ValidationError("Enrichment content cannot be empty")

        now = datetime.now(timezone.utc)
        enrichment = Enrichment(
            id=generate_id(),
            idea_id=idea_id,
            kind=kind,
            content=text,
            timestamp=_from_millis(_to_millis(now)),
            related_ideas=_dedupe(related_ideas or []),
        )

        with self._connect() as conn:
            self._require_idea_row(conn, idea_id)
            conn.execute("""
                INSERT INTO ai_expansions (
                    id, idea_id, type, content, timestamp, related_ideas, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                enrichment.id,
                enrichment.idea_id,
                enrichment.kind.value,
                enrichment.content,
                _to_millis(enrichment.timestamp),
                _dump_ids(enrichment.related_ideas),
                now.isoformat(),
            ))

        logger.info("AI expansion added: %s (%s) -> %s", enrichment.id, kind.value, idea_id)
        return enrichment

    def get_enrichments(self, idea_id: str) -> list[Enrichment]:
        """Expansions for one idea, most recent first."""
        with self._connect() as conn:
            return self._expansions_for(conn, idea_id)

    # Reporting

    def get_stats(self) -> dict[str, Any]:
        """Get database statistics."""
        with self._connect() as conn:
            total = conn.execute("SELECT COUNT(*) FROM ideas").fetchone()[0]
            favorites = conn.execute(
                "SELECT COUNT(*) FROM ideas WHERE is_favorite = 1"
            ).fetchone()[0]
            expansions = conn.execute("SELECT COUNT(*) FROM ai_expansions").fetchone()[0]
            by_kind = dict(conn.execute("""
                SELECT type, COUNT(*) FROM ai_expansions GROUP BY type
            """).fetchall())
            link_ends = sum(
                len(_load_ids(row[0]))
                for row in conn.execute("SELECT connections FROM ideas").fetchall()
            )

        return {
            "total_ideas": total,
            "favorite_ideas": favorites,
            "ai_expansions": expansions,
            "by_kind": by_kind,
            # Each connection is stored on both ends
            "connections": link_ends // 2,
        }

    def export(self) -> dict[str, Any]:
        """Snapshot of every idea with its expansions, ready for json.dumps."""
        ideas = self.list_all()
        return {
            "export_date": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "ideas": [idea.model_dump(mode="json") for idea in ideas],
        }
