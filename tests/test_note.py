# SPDX-License-Identifier: GPL-3.0-or-later

from blocknotes.constants import MAX_TAGS
from blocknotes.document import Document, empty_document, paragraph
from blocknotes.note import Note, NoteIdentity, normalize_tags, tag_set_key


def test_draft_and_persisted_identities():
    a = NoteIdentity.draft()
    b = NoteIdentity.draft()
    assert a.is_draft and b.is_draft
    assert a != b
    stored = NoteIdentity.persisted('abc')
    assert not stored.is_draft
    assert stored == NoteIdentity.persisted('abc')


def test_persisted_identity_is_not_guessed_from_its_value():
    # an imported id that happens to look like a draft is still a stored note
    assert not NoteIdentity.persisted('draft-1234').is_draft


def test_normalize_tags():
    assert normalize_tags([' a ', '', 'b', 'a', None, 'c']) == ['a', 'b', 'c']
    assert normalize_tags(None) == []
    many = [f't{i}' for i in range(MAX_TAGS + 5)]
    assert normalize_tags(many) == many[:MAX_TAGS]


def test_tag_set_key_ignores_order():
    assert tag_set_key(['b', 'a']) == tag_set_key(['a', 'b', ' a'])
    assert tag_set_key(['a']) != tag_set_key(['a', 'b'])


def test_updated_at_never_precedes_created_at():
    note = Note(id='x', created_at=100, updated_at=50)
    assert note.updated_at == 100


def test_draft_note_defaults():
    identity = NoteIdentity.draft()
    note = Note.draft(identity)
    assert note.id == identity.value
    assert note.content == empty_document()
    assert note.tags == []


def test_to_dict_uses_export_field_names():
    note = Note(
        id='n1', title='T', content=Document(blocks=(paragraph('hi'),)),
        tags=['x'], created_at=1, updated_at=2,
    )
    assert note.to_dict() == {
        'id': 'n1',
        'title': 'T',
        'content': {'blocks': [{'type': 'paragraph', 'data': {'text': 'hi'}}],
                    'version': note.content.version},
        'tags': ['x'],
        'createdAt': 1,
        'updatedAt': 2,
    }


def test_preview_text():
    note = Note(id='n', content=Document(blocks=(paragraph('<b>Hello</b>'),)))
    assert note.preview_text == 'Hello'
