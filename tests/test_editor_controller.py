# SPDX-License-Identifier: GPL-3.0-or-later

import pytest

from blocknotes.document import Block, Document, empty_document
from blocknotes.editor_controller import EditorController, EditorState
from blocknotes.errors import EditorConstructionError
from blocknotes.note import Note, NoteIdentity
from blocknotes.reconciler import AutosaveReconciler, SaveOutcome
from blocknotes.rich_text_serializer import document_from_lines, layout_document

from conftest import FakeEditor, doc, spin

MOUNT_DELAY_MS = 10


class Events:

    def __init__(self, controller):
        self.states = []
        self.loaded = []
        self.changes = []
        self.not_found = []
        self.errors = []
        controller.connect('state-changed', lambda c, s: self.states.append(s))
        controller.connect('note-loaded', lambda c, n: self.loaded.append(n))
        controller.connect('content-changed', lambda c, d: self.changes.append(d))
        controller.connect('not-found', lambda c, i: self.not_found.append(i))
        controller.connect('editor-error', lambda c, m: self.errors.append(m))


class Factory:

    def __init__(self, failures=0):
        self.failures = failures
        self.built = []

    def __call__(self, surface, config):
        if self.failures:
            self.failures -= 1
            raise EditorConstructionError('surface not ready')
        editor = FakeEditor(surface, config)
        self.built.append(editor)
        return editor


@pytest.fixture()
def factory():
    return Factory()


@pytest.fixture()
def controller(store, factory):
    c = EditorController(store, factory, placeholder_text='Write…', mount_delay_ms=MOUNT_DELAY_MS)
    yield c
    c.destroy()


def test_load_and_mount(store, controller, factory, surface):
    note = store.create_note(title='T', content=doc('body'))
    events = Events(controller)

    assert controller.load(NoteIdentity.persisted(note.id))
    assert controller.state is EditorState.READY
    assert events.states == ['loading', 'ready']
    assert events.loaded[0].title == 'T'

    controller.attach_surface(surface)
    assert factory.built == []
    spin(50)
    assert controller.state is EditorState.MOUNTED
    assert len(factory.built) == 1
    editor = factory.built[0]
    assert editor.config.initial_document == doc('body')
    assert editor.config.placeholder_text == 'Write…'
    assert surface.children == [editor]


def test_missing_note(controller, factory, surface):
    events = Events(controller)
    controller.attach_surface(surface)
    assert not controller.load(NoteIdentity.persisted('ghost'))
    assert events.not_found == ['ghost']
    assert controller.state is EditorState.IDLE
    spin(30)
    assert factory.built == []


def test_draft_needs_no_store(controller, factory, surface):
    assert controller.load(NoteIdentity.draft(), initial_document=doc('seed'))
    controller.attach_surface(surface)
    spin(40)
    assert factory.built[0].config.initial_document == doc('seed')


def test_content_is_sanitized_on_load(store, factory, surface):
    broken = Document(blocks=(Block(type='header', data={'text': 'x', 'level': 9}),))
    cache = {'n1': Note(id='n1', content=broken)}
    controller = EditorController(store, factory, cache=cache, mount_delay_ms=MOUNT_DELAY_MS)
    assert controller.load(NoteIdentity.persisted('n1'))
    assert controller.document.blocks[0].data['level'] == 2
    # the cached note is left alone
    assert cache['n1'].content is broken


def test_editor_changes_are_forwarded(store, controller, factory, surface):
    note = store.create_note(title='T')
    events = Events(controller)
    controller.load(NoteIdentity.persisted(note.id))
    controller.attach_surface(surface)
    spin(40)

    factory.built[0].edit(doc('typed'))
    assert events.changes == [doc('typed')]
    assert controller.document == doc('typed')


def test_malformed_notifications_are_ignored(store, controller, factory, surface):
    note = store.create_note(title='T', content=doc('safe'))
    events = Events(controller)
    controller.load(NoteIdentity.persisted(note.id))
    controller.attach_surface(surface)
    spin(40)

    editor = factory.built[0]
    for raw in (None, 'text', {'blocks': 'x'}, {'blocks': [{'data': {}}]}):
        editor.config.on_content_changed(raw)
    assert events.changes == []
    assert controller.document == doc('safe')


def test_raw_mapping_notifications_are_accepted(store, controller, factory, surface):
    note = store.create_note(title='T')
    events = Events(controller)
    controller.load(NoteIdentity.persisted(note.id))
    controller.attach_surface(surface)
    spin(40)

    factory.built[0].config.on_content_changed(doc('raw').to_dict())
    assert events.changes == [doc('raw')]


def test_construction_failure_stays_ready(store, surface):
    factory = Factory(failures=1)
    controller = EditorController(store, factory, mount_delay_ms=MOUNT_DELAY_MS)
    events = Events(controller)
    controller.load(NoteIdentity.draft())
    controller.attach_surface(surface)
    spin(40)
    assert controller.state is EditorState.READY
    assert len(events.errors) == 1
    assert controller.query_document() == empty_document()

    controller.retry_mount()
    spin(40)
    assert controller.state is EditorState.MOUNTED
    controller.destroy()


def test_destroy_before_mount_cancels_it(controller, factory, surface):
    controller.load(NoteIdentity.draft())
    controller.attach_surface(surface)
    controller.destroy()
    spin(40)
    assert factory.built == []
    assert controller.state is EditorState.DESTROYED
    controller.destroy()
    assert not controller.load(NoteIdentity.draft())


def test_surface_detached_before_mount(controller, factory, surface):
    controller.load(NoteIdentity.draft())
    controller.attach_surface(surface)
    controller.detach_surface()
    spin(40)
    assert factory.built == []
    assert controller.state is EditorState.READY


def test_destroy_tears_down_editor(store, controller, factory, surface):
    controller.load(NoteIdentity.draft())
    controller.attach_surface(surface)
    spin(40)
    editor = factory.built[0]
    controller.destroy()
    assert editor.destroyed
    assert surface.children == []


def test_reloading_same_note_is_a_no_op(store, controller, factory, surface):
    note = store.create_note(title='T')
    identity = NoteIdentity.persisted(note.id)
    controller.load(identity)
    controller.attach_surface(surface)
    spin(40)
    assert controller.load(identity)
    spin(40)
    assert len(factory.built) == 1


def test_switching_notes_remounts(store, controller, factory, surface):
    first = store.create_note(title='one', content=doc('1'))
    second = store.create_note(title='two', content=doc('2'))
    events = Events(controller)
    controller.load(NoteIdentity.persisted(first.id))
    controller.attach_surface(surface)
    spin(40)
    old = factory.built[0]

    controller.load(NoteIdentity.persisted(second.id))
    assert old.destroyed
    assert 'remounting' in events.states
    spin(40)
    assert len(factory.built) == 2
    assert factory.built[1].config.initial_document == doc('2')
    assert surface.children == [factory.built[1]]

    # the retired editor can no longer report changes
    old.edit(doc('stale'))
    assert doc('stale') not in events.changes


def test_rerender_replaces_content(store, controller, factory, surface):
    events = Events(controller)
    controller.load(NoteIdentity.draft())
    controller.attach_surface(surface)
    spin(40)

    controller.rerender(doc('rewritten'))
    assert events.changes == [doc('rewritten')]
    spin(40)
    assert len(factory.built) == 2
    assert factory.built[1].config.initial_document == doc('rewritten')
    assert controller.state is EditorState.MOUNTED


def test_adopt_identity_keeps_the_editor(controller, factory, surface):
    controller.load(NoteIdentity.draft())
    controller.attach_surface(surface)
    spin(40)

    controller.adopt_identity(NoteIdentity.persisted('real'))
    spin(40)
    assert len(factory.built) == 1
    assert controller.identity.value == 'real'
    assert controller.note.id == 'real'
    assert controller.state is EditorState.MOUNTED


def test_query_document(controller, factory, surface):
    controller.load(NoteIdentity.draft(), initial_document=doc('start'))
    assert controller.query_document() == doc('start')

    controller.attach_surface(surface)
    spin(40)
    editor = factory.built[0]
    editor.document = doc('unsaved')
    assert controller.query_document() == doc('unsaved')

    editor.fail_save = True
    assert controller.query_document() == doc('unsaved')


class LineEditor(FakeEditor):
    """Holds its content as buffer lines, the way the text view does."""

    def __init__(self, surface, config):
        super().__init__(surface, config)
        self.render(config.initial_document)

    def render(self, document):
        self.lines, self.preserved = layout_document(document)

    def save(self):
        return document_from_lines(self.lines, self.preserved)


def test_blocks_the_editor_cannot_edit_survive_a_reopen(store, surface):
    content = Document(blocks=(
        Block(type='header', data={'text': 'Setup', 'level': 2}),
        Block(type='code', data={'code': 'pip install x\n\nrun', 'language': 'sh'}),
        Block(type='checklist', data={'items': [
            {'text': 'pack', 'checked': True}, {'text': 'go', 'checked': False}]}),
        Block(type='list', data={'style': 'ordered', 'items': ['one', 'two']}),
    ))
    note = store.create_note(title='T', content=content)
    built = []

    def factory(surface, config):
        editor = LineEditor(surface, config)
        built.append(editor)
        return editor

    controller = EditorController(store, factory, mount_delay_ms=MOUNT_DELAY_MS)
    controller.load(NoteIdentity.persisted(note.id))
    controller.attach_surface(surface)
    spin(40)
    assert len(built) == 1

    queried = controller.query_document()
    assert [b.type for b in queried.blocks] == ['header', 'code', 'checklist', 'list']
    assert queried.blocks[1].data == content.blocks[1].data
    assert queried.blocks[2].data == content.blocks[2].data

    reconciler = AutosaveReconciler(store, controller.note, NoteIdentity.persisted(note.id))
    assert reconciler.save_now(controller.query_document) is SaveOutcome.UNCHANGED
    assert store.get_note(note.id).content.blocks[1].type == 'code'
    controller.destroy()
