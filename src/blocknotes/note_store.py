# SPDX-License-Identifier: GPL-3.0-or-later

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from enum import Enum

from blocknotes.data_paths import database_path
from blocknotes.document import Document, coerce_document, document_from_text, empty_document, sanitize
from blocknotes.errors import NoteNotFoundError, StorageError
from blocknotes.note import Note, Tag, normalize_tags, now_ms
from blocknotes.projection import to_flat_text

log = logging.getLogger(__name__)

_SETTINGS_KEY = 'appSettings'


class ConflictResolution(str, Enum):
    OVERWRITE = 'overwrite'
    KEEP_BOTH = 'keep_both'
    SKIP = 'skip'


class NoteStore:
    """SQLite-backed persistence for notes, tags and the settings snapshot."""

    def __init__(self, db_path=None):
        if db_path is None:
            db_path = database_path()

        self._db = sqlite3.connect(str(db_path))
        self._db.execute('PRAGMA journal_mode=WAL')
        self._db.execute('PRAGMA foreign_keys=ON')
        self._db.row_factory = sqlite3.Row
        self._create_tables()

    def _create_tables(self):
        self._db.executescript('''
            CREATE TABLE IF NOT EXISTS notes (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL DEFAULT '',
                content TEXT NOT NULL DEFAULT '',
                plain_text TEXT NOT NULL DEFAULT '',
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS tags (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL UNIQUE
            );

            CREATE TABLE IF NOT EXISTS note_tags (
                note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
                tag_id TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
                position INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (note_id, tag_id)
            );

            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );

            CREATE VIRTUAL TABLE IF NOT EXISTS notes_fts USING fts5(
                title, plain_text, content=notes, content_rowid=rowid
            );

            CREATE TRIGGER IF NOT EXISTS notes_ai AFTER INSERT ON notes BEGIN
                INSERT INTO notes_fts(rowid, title, plain_text)
                VALUES (new.rowid, new.title, new.plain_text);
            END;

            CREATE TRIGGER IF NOT EXISTS notes_ad AFTER DELETE ON notes BEGIN
                INSERT INTO notes_fts(notes_fts, rowid, title, plain_text)
                VALUES ('delete', old.rowid, old.title, old.plain_text);
            END;

            CREATE TRIGGER IF NOT EXISTS notes_au AFTER UPDATE ON notes BEGIN
                INSERT INTO notes_fts(notes_fts, rowid, title, plain_text)
                VALUES ('delete', old.rowid, old.title, old.plain_text);
                INSERT INTO notes_fts(rowid, title, plain_text)
                VALUES (new.rowid, new.title, new.plain_text);
            END;
        ''')

    @contextmanager
    def _transaction(self):
        """Commit on success, roll back and raise StorageError on failure."""
        try:
            with self._db:
                yield self._db
        except sqlite3.Error as e:
            log.error('Storage operation failed: %s', e)
            raise StorageError(str(e)) from e

    # --- Notes CRUD ---

    def create_note(self, title='', content=None, tags=None) -> Note:
        note = Note(
            id=str(uuid.uuid4()),
            title=title,
            content=content if content is not None else empty_document(),
            tags=normalize_tags(tags),
        )
        with self._transaction() as db:
            self._insert(db, note)
        log.info('Created note %s', note.id)
        return note

    def _query(self, sql, params=()):
        try:
            return self._db.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            log.error('Query failed: %s', e)
            raise StorageError(str(e)) from e

    def get_note(self, note_id) -> Note | None:
        rows = self._query('SELECT * FROM notes WHERE id = ?', (note_id,))
        if not rows:
            return None
        return self._row_to_note(rows[0])

    def get_all_notes(self) -> list[Note]:
        rows = self._query(
            'SELECT * FROM notes ORDER BY updated_at DESC'
        )
        return [self._row_to_note(row) for row in rows]

    def update_note(self, note) -> Note:
        updated_at = max(now_ms(), note.created_at)
        with self._transaction() as db:
            cursor = db.execute(
                'UPDATE notes SET title = ?, content = ?, plain_text = ?, updated_at = ? '
                'WHERE id = ?',
                (note.title, json.dumps(note.content.to_dict()),
                 to_flat_text(note.content), updated_at, note.id),
            )
            if cursor.rowcount == 0:
                raise NoteNotFoundError(note.id)
            self._set_tags(db, note.id, note.tags)
        return Note(
            id=note.id, title=note.title, content=note.content,
            tags=normalize_tags(note.tags),
            created_at=note.created_at, updated_at=updated_at,
        )

    def delete_note(self, note_id):
        with self._transaction() as db:
            db.execute('DELETE FROM notes WHERE id = ?', (note_id,))
        log.info('Deleted note %s', note_id)

    # --- Search ---

    def search_notes(self, query) -> list[Note]:
        if not query or not query.strip():
            return self.get_all_notes()
        # Escape FTS5 special characters and add prefix matching
        safe_query = query.replace('"', '""')
        fts_query = f'"{safe_query}"*'
        rows = self._query(
            'SELECT n.* FROM notes n '
            'JOIN notes_fts f ON n.rowid = f.rowid '
            'WHERE notes_fts MATCH ? '
            'ORDER BY rank',
            (fts_query,),
        )
        return [self._row_to_note(row) for row in rows]

    # --- Tags ---

    def get_all_tags(self) -> list[Tag]:
        rows = self._query(
            'SELECT t.name, COUNT(nt.note_id) as note_count '
            'FROM tags t '
            'LEFT JOIN note_tags nt ON t.id = nt.tag_id '
            'GROUP BY t.id HAVING note_count > 0 ORDER BY t.name'
        )
        return [Tag(name=r['name'], note_count=r['note_count']) for r in rows]

    def get_tags_for_note(self, note_id) -> list[str]:
        rows = self._query(
            'SELECT t.name FROM tags t '
            'JOIN note_tags nt ON t.id = nt.tag_id '
            'WHERE nt.note_id = ? ORDER BY nt.position',
            (note_id,),
        )
        return [r['name'] for r in rows]

    def get_notes_by_tag(self, tag_name) -> list[Note]:
        rows = self._query(
            'SELECT n.* FROM notes n '
            'JOIN note_tags nt ON n.id = nt.note_id '
            'JOIN tags t ON nt.tag_id = t.id '
            'WHERE t.name = ? '
            'ORDER BY n.updated_at DESC',
            (tag_name,),
        )
        return [self._row_to_note(row) for row in rows]

    def delete_tag(self, tag_name):
        with self._transaction() as db:
            db.execute('DELETE FROM tags WHERE name = ?', (tag_name,))

    # --- Import ---

    def import_notes(self, notes, resolution=ConflictResolution.OVERWRITE) -> int:
        """Write imported notes in one transaction. Returns how many were written."""
        written = 0
        with self._transaction() as db:
            for note in notes:
                exists = db.execute(
                    'SELECT 1 FROM notes WHERE id = ?', (note.id,)
                ).fetchone() is not None
                if exists and resolution is ConflictResolution.SKIP:
                    continue
                if exists and resolution is ConflictResolution.KEEP_BOTH:
                    note = Note(
                        id=str(uuid.uuid4()), title=note.title, content=note.content,
                        tags=note.tags, created_at=note.created_at,
                        updated_at=note.updated_at,
                    )
                elif exists:
                    db.execute('DELETE FROM notes WHERE id = ?', (note.id,))
                self._insert(db, note)
                written += 1
        log.info('Imported %d of %d notes', written, len(notes))
        return written

    # --- Settings ---

    def load_settings(self) -> dict | None:
        rows = self._query('SELECT value FROM settings WHERE key = ?', (_SETTINGS_KEY,))
        if not rows:
            return None
        try:
            return json.loads(rows[0]['value'])
        except json.JSONDecodeError:
            log.warning('Stored settings are not valid JSON; using defaults')
            return None

    def save_settings(self, settings):
        with self._transaction() as db:
            db.execute(
                'INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)',
                (_SETTINGS_KEY, json.dumps(settings.to_dict())),
            )

    # --- Helpers ---

    def _insert(self, db, note):
        db.execute(
            'INSERT INTO notes (id, title, content, plain_text, created_at, updated_at) '
            'VALUES (?, ?, ?, ?, ?, ?)',
            (note.id, note.title, json.dumps(note.content.to_dict()),
             to_flat_text(note.content), note.created_at, note.updated_at),
        )
        self._set_tags(db, note.id, note.tags)

    def _set_tags(self, db, note_id, tags):
        db.execute('DELETE FROM note_tags WHERE note_id = ?', (note_id,))
        for position, name in enumerate(normalize_tags(tags)):
            db.execute(
                'INSERT OR IGNORE INTO tags (id, name) VALUES (?, ?)',
                (str(uuid.uuid4()), name),
            )
            db.execute(
                'INSERT INTO note_tags (note_id, tag_id, position) '
                'SELECT ?, id, ? FROM tags WHERE name = ?',
                (note_id, position, name),
            )

    def _row_to_note(self, row) -> Note:
        try:
            raw_content = json.loads(row['content'])
        except json.JSONDecodeError:
            # Legacy rows hold bare text
            raw_content = row['content']
        return Note(
            id=row['id'],
            title=row['title'],
            content=_stored_document(raw_content),
            tags=self.get_tags_for_note(row['id']),
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )

    def close(self):
        self._db.close()


def _stored_document(raw) -> Document:
    """Stored content as a Document; repairs are deferred to editor load."""
    if isinstance(raw, str):
        return document_from_text(raw)
    document = coerce_document(raw)
    if document is None:
        return sanitize(raw).document
    return document
