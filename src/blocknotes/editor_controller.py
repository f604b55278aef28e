# SPDX-License-Identifier: GPL-3.0-or-later
"""Owns the lifecycle of the block editor mounted on a note surface."""

import logging
from dataclasses import replace
from enum import Enum

from gi.repository import GLib, GObject

from blocknotes.constants import EDITOR_MOUNT_DELAY_MS
from blocknotes.document import coerce_document, sanitize
from blocknotes.editor import EditorConfig
from blocknotes.errors import StorageError
from blocknotes.note import Note

log = logging.getLogger(__name__)


class EditorState(str, Enum):
    IDLE = 'idle'
    LOADING = 'loading'
    READY = 'ready'
    MOUNTED = 'mounted'
    REMOUNTING = 'remounting'
    DESTROYED = 'destroyed'


class EditorController(GObject.Object):
    """
    Idle -> Loading -> Ready -> Mounted -> (Remounting | Destroyed)

    The editor is built through ``editor_factory(surface, EditorConfig)`` once a
    document is loaded and a surface is attached, after a short delay that
    lets the surface settle.
    """

    __gsignals__ = {
        'state-changed': (GObject.SignalFlags.RUN_LAST, None, (str,)),
        'note-loaded': (GObject.SignalFlags.RUN_LAST, None, (object,)),
        'content-changed': (GObject.SignalFlags.RUN_LAST, None, (object,)),
        'not-found': (GObject.SignalFlags.RUN_LAST, None, (str,)),
        'editor-error': (GObject.SignalFlags.RUN_LAST, None, (str,)),
    }

    def __init__(self, store, editor_factory, placeholder_text='',
                 cache=None, mount_delay_ms=EDITOR_MOUNT_DELAY_MS):
        super().__init__()
        self._store = store
        self._editor_factory = editor_factory
        self._placeholder_text = placeholder_text
        self._cache = cache if cache is not None else {}
        self._mount_delay_ms = mount_delay_ms

        self._state = EditorState.IDLE
        self._identity = None
        self._note = None
        self._document = None
        self._surface = None
        self._editor = None
        self._generation = 0
        self._mount_timeout_id = None

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def identity(self):
        return self._identity

    @property
    def note(self):
        return self._note

    @property
    def document(self):
        """The last accepted content snapshot."""
        return self._document

    @property
    def editor(self):
        return self._editor

    def _set_state(self, state):
        if state is self._state:
            return
        log.debug('Editor state %s -> %s', self._state.value, state.value)
        self._state = state
        self.emit('state-changed', state.value)

    # --- Loading ---

    def load(self, identity, initial_document=None) -> bool:
        """Select the note to edit. Returns False when it does not exist."""
        if self._state is EditorState.DESTROYED:
            return False
        if (identity == self._identity and initial_document is None
                and self._state in (EditorState.READY, EditorState.MOUNTED)):
            return True

        self._cancel_mount()
        if self._editor is not None:
            self._set_state(EditorState.REMOUNTING)
            self._teardown()
        self._set_state(EditorState.LOADING)

        if identity.is_draft:
            note = Note.draft(identity, content=initial_document)
        else:
            note = self._resolve(identity.value)
            if note is None:
                log.warning('Note %s not found', identity.value)
                self._identity = None
                self._note = None
                self._document = None
                self._set_state(EditorState.IDLE)
                self.emit('not-found', identity.value)
                return False
            if initial_document is not None:
                note = replace(note, content=initial_document)

        result = sanitize(note.content)
        for repair in result.repairs:
            log.warning('Note %s content repaired: %s', identity.value, repair)
        note = replace(note, content=result.document)

        self._identity = identity
        self._note = note
        self._document = result.document
        self._set_state(EditorState.READY)
        self.emit('note-loaded', note)
        self._schedule_mount()
        return True

    def _resolve(self, note_id):
        cached = self._cache.get(note_id)
        if cached is not None:
            return cached
        try:
            note = self._store.get_note(note_id)
        except StorageError as e:
            log.error('Loading note %s failed: %s', note_id, e)
            return None
        if note is not None:
            self._cache[note_id] = note
        return note

    def adopt_identity(self, identity):
        """Follow a draft's promotion to a stored note without remounting."""
        log.debug('Editor identity %s -> %s', self._identity and self._identity.value, identity.value)
        self._identity = identity
        if self._note is not None:
            self._note.id = identity.value

    # --- Surface and mounting ---

    def attach_surface(self, surface):
        self._surface = surface
        self._schedule_mount()

    def detach_surface(self):
        self._surface = None
        self._cancel_mount()
        if self._editor is not None:
            self._teardown()
            self._set_state(EditorState.READY)

    def retry_mount(self):
        self._schedule_mount()

    def _schedule_mount(self):
        if self._state not in (EditorState.READY, EditorState.REMOUNTING):
            return
        if self._document is None or self._surface is None:
            return
        if self._mount_timeout_id is not None:
            return
        self._mount_timeout_id = GLib.timeout_add(self._mount_delay_ms, self._on_mount_timeout)

    def _cancel_mount(self):
        if self._mount_timeout_id is not None:
            GLib.source_remove(self._mount_timeout_id)
            self._mount_timeout_id = None

    def _on_mount_timeout(self):
        self._mount_timeout_id = None
        if self._surface is None or self._document is None:
            log.debug('Surface gone before the editor could be built')
            return GLib.SOURCE_REMOVE
        if self._state in (EditorState.READY, EditorState.REMOUNTING):
            self._mount()
        return GLib.SOURCE_REMOVE

    def _mount(self) -> bool:
        self._teardown()
        self._generation += 1
        generation = self._generation
        config = EditorConfig(
            initial_document=self._document,
            placeholder_text=self._placeholder_text,
            on_content_changed=lambda raw: self._on_editor_changed(generation, raw),
        )
        try:
            editor = self._editor_factory(self._surface, config)
        except Exception as e:
            log.exception('Editor construction failed')
            self._set_state(EditorState.READY)
            self.emit('editor-error', f'Editor failed to load: {e}')
            return False
        self._editor = editor
        self._set_state(EditorState.MOUNTED)
        return True

    def _teardown(self):
        editor, self._editor = self._editor, None
        self._generation += 1
        if editor is None:
            return
        try:
            editor.destroy()
        except Exception as e:
            log.warning('Error destroying previous editor: %s', e)

    # --- Content ---

    def _on_editor_changed(self, generation, raw):
        if generation != self._generation or self._state is not EditorState.MOUNTED:
            log.debug('Ignoring change from a retired editor')
            return
        document = coerce_document(raw)
        if document is None:
            log.warning('Ignoring malformed content notification: %r', type(raw).__name__)
            return
        self._document = document
        self.emit('content-changed', document)

    def rerender(self, document):
        """Replace the content from outside the editor, rebuilding it."""
        if self._state in (EditorState.IDLE, EditorState.LOADING, EditorState.DESTROYED):
            return
        result = sanitize(document)
        for repair in result.repairs:
            log.warning('Replacement content repaired: %s', repair)
        self._cancel_mount()
        self._set_state(EditorState.REMOUNTING)
        self._teardown()
        self._document = result.document
        self.emit('content-changed', result.document)
        self._schedule_mount()

    def query_document(self):
        """Latest content from the editor, or the last snapshot if it cannot answer."""
        if self._editor is None:
            return self._document
        try:
            raw = self._editor.save()
        except Exception as e:
            log.warning('Editor could not be queried: %s', e)
            return self._document
        document = coerce_document(raw)
        if document is None:
            log.warning('Editor returned malformed content; using last snapshot')
            return self._document
        self._document = document
        return document

    def destroy(self):
        if self._state is EditorState.DESTROYED:
            return
        self._cancel_mount()
        self._teardown()
        self._surface = None
        self._set_state(EditorState.DESTROYED)
