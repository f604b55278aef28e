# SPDX-License-Identifier: GPL-3.0-or-later
"""Decides when and how an edited note is written to the store."""

import logging
from enum import Enum

from gi.repository import GObject

from blocknotes.auto_save import Debounce
from blocknotes.constants import AUTOSAVE_DELAY_MS
from blocknotes.document import is_empty_document
from blocknotes.errors import NoteNotFoundError, StorageError
from blocknotes.note import Note, NoteIdentity, normalize_tags, tag_set_key
from blocknotes.projection import to_flat_text

log = logging.getLogger(__name__)


class SaveOutcome(str, Enum):
    CREATED = 'created'
    SAVED = 'saved'
    UNCHANGED = 'unchanged'
    EMPTY_DRAFT = 'empty-draft'
    FAILED = 'failed'
    COALESCED = 'coalesced'


def is_empty_draft(title, document) -> bool:
    return not (title or '').strip() and is_empty_document(document)


def _fingerprint(title, document, tags):
    return title, to_flat_text(document), tag_set_key(tags)


class AutosaveReconciler(GObject.Object):
    """Tracks title, content and tags of one note and persists them.

    Writes happen after the debounce window, or immediately via
    save_now(). Only one write runs at a time; a write requested while
    another is running is folded into a follow-up write of the latest
    state.
    """

    __gsignals__ = {
        'saved': (GObject.SignalFlags.RUN_LAST, None, (str,)),
        'save-failed': (GObject.SignalFlags.RUN_LAST, None, (str,)),
        'identity-changed': (GObject.SignalFlags.RUN_LAST, None, (str,)),
        'empty-draft-rejected': (GObject.SignalFlags.RUN_LAST, None, ()),
    }

    def __init__(self, store, note, identity, delay_ms=AUTOSAVE_DELAY_MS):
        super().__init__()
        self._store = store
        self._debounce = Debounce(self._on_debounce_elapsed, delay_ms)
        self._writing = False
        self._rerun = False
        self.reset(note, identity)

    def reset(self, note, identity):
        """Start tracking another note; any pending write is dropped."""
        self._debounce.cancel()
        self._identity = identity
        self._note = note
        self._title = note.title
        self._document = note.content
        self._tags = normalize_tags(note.tags)
        if identity.is_draft:
            self._baseline = None
        else:
            self._baseline = _fingerprint(note.title, note.content, note.tags)

    @property
    def identity(self) -> NoteIdentity:
        return self._identity

    @property
    def title(self) -> str:
        return self._title

    @property
    def document(self):
        return self._document

    @property
    def tags(self) -> list[str]:
        return list(self._tags)

    @property
    def pending(self) -> bool:
        return self._debounce.pending

    def snapshot(self) -> Note:
        """The note as currently edited, saved or not."""
        return Note(
            id=self._identity.value,
            title=self._title,
            content=self._document,
            tags=list(self._tags),
            created_at=self._note.created_at,
            updated_at=self._note.updated_at,
        )

    # --- Observation ---

    def observe(self, title=None, document=None, tags=None, schedule=True):
        """Record the live state; schedule=False only updates the snapshot."""
        if title is not None:
            self._title = title
        if document is not None:
            self._document = document
        if tags is not None:
            self._tags = normalize_tags(tags)
        if schedule:
            self._debounce.trigger()

    def set_title(self, title):
        self.observe(title=title)

    def set_document(self, document):
        self.observe(document=document)

    def set_tags(self, tags):
        self.observe(tags=tags)

    def add_tags(self, tags):
        self.observe(tags=self._tags + list(tags))

    def cancel(self):
        self._debounce.cancel()

    # --- Writing ---

    def save_now(self, query_document=None) -> SaveOutcome:
        """Manual save: skip the debounce and write the latest content."""
        self._debounce.cancel()
        if query_document is not None:
            document = query_document()
            if document is not None:
                self._document = document
        return self._write(manual=True)

    def _on_debounce_elapsed(self):
        self._write(manual=False)

    def _write(self, manual) -> SaveOutcome:
        if self._writing:
            self._rerun = True
            log.debug('Write already in flight for %s; coalescing', self._identity.value)
            return SaveOutcome.COALESCED

        self._writing = True
        try:
            outcome = self._persist(manual)
            while self._rerun and outcome is not SaveOutcome.FAILED:
                self._rerun = False
                follow_up = self._persist(manual)
                if follow_up is not SaveOutcome.UNCHANGED:
                    outcome = follow_up
        finally:
            self._writing = False
            coalesced, self._rerun = self._rerun, False
        if coalesced and outcome is SaveOutcome.FAILED:
            # The coalesced write is retried after the next debounce
            self._debounce.trigger()
        return outcome

    def _persist(self, manual) -> SaveOutcome:
        title, document, tags = self._title, self._document, list(self._tags)

        if self._identity.is_draft:
            if is_empty_draft(title, document):
                if manual:
                    self.emit('empty-draft-rejected')
                return SaveOutcome.EMPTY_DRAFT
            try:
                note = self._store.create_note(title=title, content=document, tags=tags)
            except StorageError as e:
                return self._failed(e)
            self._identity = NoteIdentity.persisted(note.id)
            self._note = note
            self._baseline = _fingerprint(title, document, tags)
            log.info('Draft promoted to note %s', note.id)
            self.emit('identity-changed', note.id)
            self.emit('saved', note.id)
            return SaveOutcome.CREATED

        fingerprint = _fingerprint(title, document, tags)
        if fingerprint == self._baseline:
            return SaveOutcome.UNCHANGED

        note = Note(
            id=self._identity.value,
            title=title,
            content=document,
            tags=tags,
            created_at=self._note.created_at,
            updated_at=self._note.updated_at,
        )
        try:
            self._note = self._store.update_note(note)
        except (StorageError, NoteNotFoundError) as e:
            return self._failed(e)
        self._baseline = fingerprint
        log.debug('Saved note %s', note.id)
        self.emit('saved', note.id)
        return SaveOutcome.SAVED

    def _failed(self, error) -> SaveOutcome:
        # Local state is kept; the next change or manual save retries.
        log.error('Saving %s failed: %s', self._identity.value, error)
        self.emit('save-failed', str(error))
        return SaveOutcome.FAILED
