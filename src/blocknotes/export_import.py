# SPDX-License-Identifier: GPL-3.0-or-later
"""
Versioned JSON export/import and single-note text exports.

Export envelope (version 2):
{
  "version": 2,
  "notes": [{"id", "title", "content", "tags", "createdAt", "updatedAt"}],
  "settings": {...}            # optional
}

Version 1 exports were a bare array of notes and are still accepted.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

from blocknotes.constants import EXPORT_VERSION
from blocknotes.document import Document, coerce_document, empty_document, paragraph, sanitize
from blocknotes.errors import InvalidFormatError, NoteValidationError
from blocknotes.note import Note, normalize_tags, now_ms
from blocknotes.note_store import ConflictResolution
from blocknotes.projection import to_markdown, to_plain_text

log = logging.getLogger(__name__)

FORMAT_LEGACY = 'legacy'
FORMAT_FULL = 'full'
FORMAT_NOTES_ONLY = 'notes-only'


@dataclass
class ImportResult:
    notes: list
    settings: Optional[dict] = None
    format: str = FORMAT_FULL
    warnings: list = field(default_factory=list)


# --- Export ---

def build_export(notes, settings=None) -> dict:
    envelope = {
        'version': EXPORT_VERSION,
        'notes': [note.to_dict() for note in notes],
    }
    if settings is not None:
        envelope['settings'] = settings.to_dict()
    return envelope


def export_json(notes, settings=None) -> str:
    return json.dumps(build_export(notes, settings), ensure_ascii=False, indent=2)


def _tags_line(note) -> str:
    return f"Tags: {', '.join(note.tags)}\n\n" if note.tags else ''


def note_to_markdown(note) -> str:
    return f'# {note.title}\n\n{_tags_line(note)}{to_markdown(note.content)}'


def note_to_plain_text(note) -> str:
    return f'Title: {note.title}\n\n{_tags_line(note)}{to_plain_text(note.content)}'


def export_filename(extension, note=None, today=None) -> str:
    if note is None:
        today = today or date.today()
        return f'mynotes_export_{today.isoformat()}.{extension}'
    slug = re.sub(r'[^a-z0-9]', '_', note.title.lower()) or 'note'
    return f'{slug}.{extension}'


def write_export(path, text):
    """Atomically write an export artifact."""
    path = Path(path)
    tmp_path = path.with_suffix(path.suffix + '.tmp')
    with tmp_path.open('w', encoding='utf-8') as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)
    log.info('Exported to %s', path)


# --- Import ---

def parse_import_text(text) -> ImportResult:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidFormatError(f'Failed to parse JSON file: {e}') from e
    return parse_import(raw)


def read_import(path) -> ImportResult:
    try:
        text = Path(path).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidFormatError(f'Failed to read the file: {e}') from e
    return parse_import_text(text)


def parse_import(raw) -> ImportResult:
    """Recognise an export payload and normalise its notes.

    Raises InvalidFormatError or NoteValidationError; on failure no
    partial result is returned.
    """
    warnings = []
    settings = None
    if isinstance(raw, list):
        fmt = FORMAT_LEGACY
        raw_notes = raw
    elif isinstance(raw, dict) and isinstance(raw.get('notes'), list):
        raw_notes = raw['notes']
        if raw.get('version') == EXPORT_VERSION and isinstance(raw.get('settings'), dict):
            fmt = FORMAT_FULL
            settings = raw['settings']
        else:
            fmt = FORMAT_NOTES_ONLY
            message = 'Export format not fully recognised; importing notes only'
            log.warning(message)
            warnings.append(message)
    else:
        raise InvalidFormatError(
            'Expected an array of notes or an export object with a "notes" array')

    fallback_time = now_ms()
    notes = [_normalize_note(index, entry, fallback_time) for index, entry in enumerate(raw_notes)]
    return ImportResult(notes=notes, settings=settings, format=fmt, warnings=warnings)


def _normalize_note(index, entry, fallback_time) -> Note:
    if not isinstance(entry, dict):
        raise NoteValidationError(index, 'entry is not an object')
    note_id = entry.get('id')
    if not isinstance(note_id, str) or not note_id.strip():
        raise NoteValidationError(index, 'missing id')
    if not isinstance(entry.get('title'), str):
        raise NoteValidationError(index, 'title is not a string')

    raw_tags = entry.get('tags')
    return Note(
        id=note_id,
        title=entry['title'],
        content=_imported_content(entry.get('content')),
        tags=normalize_tags(raw_tags if isinstance(raw_tags, list) else []),
        created_at=_timestamp(entry.get('createdAt'), fallback_time),
        updated_at=_timestamp(entry.get('updatedAt'), fallback_time),
    )


def _imported_content(raw):
    # Not sanitized here; repairs happen when the note is first opened.
    if isinstance(raw, str):
        return Document(blocks=(paragraph(raw),))
    if isinstance(raw, dict) and isinstance(raw.get('blocks'), list):
        document = coerce_document(raw)
        if document is not None:
            return document
        # Foreign block entries cannot be carried as Blocks
        result = sanitize(raw)
        log.warning('Imported content repaired: %s', '; '.join(result.repairs))
        return result.document
    return empty_document()


def _timestamp(value, fallback) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        return fallback
    return int(value)


def commit_import(store, result, resolution=ConflictResolution.OVERWRITE) -> int:
    """Persist a parsed import in one transaction."""
    return store.import_notes(result.notes, resolution)
