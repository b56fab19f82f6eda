"""
Catalog Database Module
=======================

SQLite storage for the CuraLink content catalog (trials, publications,
health experts).
"""

import sqlite3
import json
import os
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set
from contextlib import contextmanager

from .models import (
    AffiliationState,
    AnyContentItem,
    ContentKind,
    Expert,
    MODEL_FOR_KIND,
    Provenance,
)

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when the content store cannot be read or written."""
    pass


class DuplicateContentError(CatalogError):
    """Raised when a storage-level uniqueness constraint rejects a row."""

    def __init__(self, kind: ContentKind, key: str, original_error: Optional[str] = None):
        self.kind = kind
        self.key = key
        self.original_error = original_error
        super().__init__(f"A {kind.value} row with {key} already exists")


def _key(value: Optional[str]) -> str:
    """Case-folded comparison key."""
    return (value or "").strip().casefold()


def _timestamp(value: Optional[datetime] = None) -> str:
    value = value or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class CatalogDB:
    """
    Content store for CuraLink.

    One kind-discriminated table holds all content, with tags kept in a
    side table so tag overlap can be evaluated in SQL. Uniqueness on
    (kind, external_identifier) is the authoritative de-duplication
    backstop for concurrent imports.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the CatalogDB.

        Args:
            db_path: Path to SQLite database file. If None, uses default location.
        """
        if db_path is None:
            db_path = os.getenv("CURALINK_DB_PATH", None)
            if db_path is None:
                project_root = Path(__file__).parent.parent.parent
                db_path = project_root / "data" / "curalink.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    @contextmanager
    def _get_connection(self):
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise CatalogError(f"Cannot open catalog at {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise CatalogError(f"Catalog operation failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        """Initialize the database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS content_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    kind TEXT NOT NULL CHECK (kind IN ('trials', 'publications', 'experts')),
                    title TEXT NOT NULL,
                    title_key TEXT NOT NULL,
                    description TEXT,
                    search_text TEXT NOT NULL,
                    external_identifier TEXT,
                    provenance TEXT NOT NULL,
                    affiliation_state TEXT,
                    account_ref TEXT UNIQUE,
                    summary TEXT,
                    source TEXT,
                    attributes TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT,
                    UNIQUE(kind, external_identifier),
                    CHECK (kind = 'experts' OR (affiliation_state IS NULL AND account_ref IS NULL)),
                    CHECK (kind <> 'experts' OR affiliation_state IS NOT NULL),
                    CHECK ((affiliation_state = 'platformMember') = (account_ref IS NOT NULL))
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS content_tags (
                    content_id INTEGER NOT NULL,
                    tag TEXT NOT NULL,
                    tag_key TEXT NOT NULL,
                    PRIMARY KEY (content_id, tag_key),
                    FOREIGN KEY (content_id) REFERENCES content_items(id) ON DELETE CASCADE
                )
            ''')

            cursor.execute('CREATE INDEX IF NOT EXISTS idx_content_kind_created ON content_items(kind, created_at)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_content_title_key ON content_items(kind, title_key)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_content_affiliation ON content_items(kind, affiliation_state)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_content_tags_key ON content_tags(tag_key)')
            # One seeded row per title and kind, even under concurrent first requests
            cursor.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_content_seed_title "
                "ON content_items(kind, title_key) WHERE source = 'seed'"
            )

    # ==================== WRITE OPERATIONS ====================

    def add_item(self, item: AnyContentItem) -> AnyContentItem:
        """
        Insert a new catalog row.

        Args:
            item: Trial, Publication or Expert without an id

        Returns:
            The stored item, with id and created_at populated

        Raises:
            DuplicateContentError: If a uniqueness constraint rejects the row
            CatalogError: On any other storage failure
        """
        created_at = _timestamp(item.created_at)
        is_expert = item.kind == ContentKind.EXPERTS

        with self._get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute('''
                    INSERT INTO content_items (
                        kind, title, title_key, description, search_text,
                        external_identifier, provenance, affiliation_state, account_ref,
                        summary, source, attributes, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''', (
                    item.kind.value,
                    item.title,
                    _key(item.title),
                    item.description,
                    _key(item.searchable_text()),
                    item.external_identifier,
                    item.provenance.value,
                    item.affiliation_state.value if is_expert else None,
                    item.account_ref if is_expert else None,
                    item.summary,
                    item.source,
                    json.dumps(item.attributes()),
                    created_at,
                ))
            except sqlite3.IntegrityError as e:
                message = str(e).lower()
                if "external_identifier" in message:
                    raise DuplicateContentError(
                        item.kind, f"identifier '{item.external_identifier}'", str(e)
                    )
                if "account_ref" in message:
                    raise DuplicateContentError(
                        item.kind, f"account '{item.account_ref}'", str(e)
                    )
                if "title_key" in message:
                    raise DuplicateContentError(
                        item.kind, f"seed '{item.title}'", str(e)
                    )
                raise
            item_id = cursor.lastrowid
            self._write_tags(cursor, item_id, item.tags)

        return self.get_item(item_id)

    def _write_tags(self, cursor: sqlite3.Cursor, item_id: int, tags: Iterable[str]):
        cursor.execute('DELETE FROM content_tags WHERE content_id = ?', (item_id,))
        for tag in tags:
            cursor.execute(
                'INSERT OR IGNORE INTO content_tags (content_id, tag, tag_key) VALUES (?, ?, ?)',
                (item_id, tag, _key(tag)),
            )

    def upsert_platform_expert(
        self,
        account_ref: str,
        name: str,
        specialties: Optional[List[str]] = None,
        research_interests: Optional[List[str]] = None,
        email: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Expert:
        """
        Create or refresh the expert row backing a platform account.

        There is at most one platform expert per account; calling this
        again updates that row in place.
        """
        expert = Expert(
            title=name,
            affiliation_state=AffiliationState.PLATFORM_MEMBER,
            account_ref=account_ref,
            specialties=specialties or [],
            research_interests=research_interests or [],
            email=email,
            location=location,
            provenance=Provenance.PLATFORM,
            source="platform",
        )

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'SELECT id FROM content_items WHERE account_ref = ?', (account_ref,)
            )
            row = cursor.fetchone()
            if row is None:
                existing_id = None
            else:
                existing_id = row['id']
                cursor.execute('''
                    UPDATE content_items
                    SET title = ?, title_key = ?, search_text = ?, attributes = ?, updated_at = ?
                    WHERE id = ?
                ''', (
                    expert.title,
                    _key(expert.title),
                    _key(expert.searchable_text()),
                    json.dumps(expert.attributes()),
                    _timestamp(),
                    existing_id,
                ))
                self._write_tags(cursor, existing_id, expert.tags)

        if existing_id is None:
            logger.info(f"Registered platform expert '{name}' for account {account_ref}")
            return self.add_item(expert)

        logger.info(f"Updated platform expert '{name}' for account {account_ref}")
        return self.get_item(existing_id)

    def add_external_expert(
        self,
        name: str,
        specialties: Optional[List[str]] = None,
        research_interests: Optional[List[str]] = None,
        location: Optional[str] = None,
        source: str = "external",
    ) -> Optional[Expert]:
        """
        Add an externally imported expert unless one with that exact name exists.

        Returns:
            The stored Expert, or None if the name was already imported
        """
        if name in self.expert_names([AffiliationState.EXTERNAL_IMPORT]):
            logger.debug(f"External expert '{name}' already present")
            return None

        return self.add_item(Expert(
            title=name,
            affiliation_state=AffiliationState.EXTERNAL_IMPORT,
            specialties=specialties or [],
            research_interests=research_interests or [],
            location=location,
            provenance=Provenance.IMPORTED,
            source=source,
        ))

    # ==================== READ OPERATIONS ====================

    def get_item(self, item_id: int) -> Optional[AnyContentItem]:
        """Get a catalog row by its ID."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT * FROM content_items WHERE id = ?', (item_id,))
            row = cursor.fetchone()
            if not row:
                return None
            tags = self._load_tags(cursor, [item_id])
            return self._row_to_item(row, tags.get(item_id, []))

    def count(
        self,
        kind: ContentKind,
        affiliation_states: Optional[Sequence[AffiliationState]] = None,
    ) -> int:
        """Count rows of a kind, optionally restricted to expert states."""
        where, params = self._base_filter(kind, affiliation_states)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT COUNT(*) AS total FROM content_items c WHERE {where}', params)
            return cursor.fetchone()['total']

    def exists_by_external_identifier(self, kind: ContentKind, identifier: str) -> bool:
        """Check for a row of this kind with the given external identifier."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'SELECT 1 FROM content_items WHERE kind = ? AND external_identifier = ? LIMIT 1',
                (kind.value, identifier.strip()),
            )
            return cursor.fetchone() is not None

    def exists_by_title(self, kind: ContentKind, title: str) -> bool:
        """Check for a row of this kind whose title matches, ignoring case."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'SELECT 1 FROM content_items WHERE kind = ? AND title_key = ? LIMIT 1',
                (kind.value, _key(title)),
            )
            return cursor.fetchone() is not None

    def query_items(
        self,
        kind: ContentKind,
        tags: Optional[Sequence[str]] = None,
        text: Optional[str] = None,
        affiliation_states: Optional[Sequence[AffiliationState]] = None,
        platform_first: bool = False,
        limit: int = 50,
    ) -> List[AnyContentItem]:
        """
        Filtered, recency-ordered read.

        Args:
            kind: Content kind to read
            tags: Patient tags. A row matches if one of its tags equals a
                patient tag (ignoring case) or a patient tag occurs in its
                title/description (ignoring case). None means no tag filter.
            text: Optional substring filter over title/description
            affiliation_states: Restrict experts to these states
            platform_first: Order platform members ahead of other experts
            limit: Maximum number of rows

        Returns:
            Matching items, newest first
        """
        where, params = self._base_filter(kind, affiliation_states)

        if tags is not None:
            keys = [k for k in dict.fromkeys(_key(t) for t in tags) if k]
            if not keys:
                return []
            placeholders = ", ".join("?" for _ in keys)
            substring_checks = " OR ".join("instr(c.search_text, ?) > 0" for _ in keys)
            where += f'''
                AND (
                    EXISTS (
                        SELECT 1 FROM content_tags t
                        WHERE t.content_id = c.id AND t.tag_key IN ({placeholders})
                    )
                    OR {substring_checks}
                )
            '''
            params.extend(keys)
            params.extend(keys)

        if text and _key(text):
            where += ' AND instr(c.search_text, ?) > 0'
            params.append(_key(text))

        order = 'c.created_at DESC, c.id DESC'
        if platform_first:
            order = (
                f"CASE WHEN c.affiliation_state = '{AffiliationState.PLATFORM_MEMBER.value}' "
                f"THEN 0 ELSE 1 END, {order}"
            )

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'SELECT c.* FROM content_items c WHERE {where} ORDER BY {order} LIMIT ?',
                params + [limit],
            )
            rows = cursor.fetchall()
            tags_by_id = self._load_tags(cursor, [row['id'] for row in rows])
            return [self._row_to_item(row, tags_by_id.get(row['id'], [])) for row in rows]

    def expert_names(
        self,
        affiliation_states: Optional[Sequence[AffiliationState]] = None,
    ) -> Set[str]:
        """Exact names of experts in the given states."""
        where, params = self._base_filter(ContentKind.EXPERTS, affiliation_states)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT title FROM content_items c WHERE {where}', params)
            return {row['title'] for row in cursor.fetchall()}

    def publication_authors(self) -> Dict[str, List[str]]:
        """
        Distinct non-empty author names across all publications, oldest first.

        Returns:
            Author name -> union of the tags of their publications
        """
        authors: Dict[str, List[str]] = {}
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                'SELECT id, attributes FROM content_items WHERE kind = ? ORDER BY created_at, id',
                (ContentKind.PUBLICATIONS.value,),
            )
            rows = cursor.fetchall()
            tags_by_id = self._load_tags(cursor, [row['id'] for row in rows])

            for row in rows:
                attributes = json.loads(row['attributes'] or '{}')
                for author in attributes.get('authors') or []:
                    name = (author or '').strip()
                    if not name:
                        continue
                    interests = authors.setdefault(name, [])
                    for tag in tags_by_id.get(row['id'], []):
                        if tag not in interests:
                            interests.append(tag)
        return authors

    # ==================== HELPERS ====================

    def _base_filter(
        self,
        kind: ContentKind,
        affiliation_states: Optional[Sequence[AffiliationState]],
    ):
        where = 'c.kind = ?'
        params: List[Any] = [kind.value]
        if affiliation_states is not None:
            states = [AffiliationState(s).value for s in affiliation_states]
            if not states:
                return '0', []
            where += f' AND c.affiliation_state IN ({", ".join("?" for _ in states)})'
            params.extend(states)
        return where, params

    def _load_tags(self, cursor: sqlite3.Cursor, item_ids: List[int]) -> Dict[int, List[str]]:
        if not item_ids:
            return {}
        placeholders = ", ".join("?" for _ in item_ids)
        cursor.execute(
            f'SELECT content_id, tag FROM content_tags WHERE content_id IN ({placeholders}) ORDER BY rowid',
            item_ids,
        )
        tags: Dict[int, List[str]] = {}
        for row in cursor.fetchall():
            tags.setdefault(row['content_id'], []).append(row['tag'])
        return tags

    def _row_to_item(self, row: sqlite3.Row, tags: List[str]) -> AnyContentItem:
        """Convert a database row to its content model."""
        kind = ContentKind(row['kind'])
        fields: Dict[str, Any] = dict(
            id=row['id'],
            title=row['title'],
            description=row['description'],
            tags=tags,
            external_identifier=row['external_identifier'],
            provenance=Provenance(row['provenance']),
            summary=row['summary'],
            source=row['source'],
            created_at=datetime.fromisoformat(row['created_at']),
        )
        fields.update(json.loads(row['attributes'] or '{}'))
        if kind == ContentKind.EXPERTS:
            fields['affiliation_state'] = AffiliationState(row['affiliation_state'])
            fields['account_ref'] = row['account_ref']
        return MODEL_FOR_KIND[kind](**fields)
