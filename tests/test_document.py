# SPDX-License-Identifier: GPL-3.0-or-later

from blocknotes.document import (
    Block,
    BlockKind,
    Document,
    coerce_document,
    document_from_text,
    empty_document,
    is_document_shaped,
    is_empty_document,
    paragraph,
    sanitize,
)


def test_empty_document_is_single_empty_paragraph():
    document = empty_document()
    assert len(document.blocks) == 1
    assert document.blocks[0].type == 'paragraph'
    assert document.blocks[0].data == {'text': ''}
    assert is_empty_document(document)


def test_is_empty_document_ignores_markup_and_whitespace():
    assert is_empty_document(Document(blocks=()))
    assert is_empty_document(Document(blocks=(paragraph('  <b> </b> '),)))
    assert not is_empty_document(Document(blocks=(paragraph('x'),)))
    assert not is_empty_document(Document(blocks=(paragraph(), paragraph())))
    header = Block(type='header', data={'text': '', 'level': 2})
    assert not is_empty_document(Document(blocks=(header,)))


def test_document_from_text_splits_on_blank_lines():
    document = document_from_text('first line\nstill first\n\nsecond\n  \n\n third ')
    assert [b.data['text'] for b in document.blocks] == [
        'first line\nstill first', 'second', ' third ',
    ]


def test_document_from_text_whitespace_only():
    assert document_from_text('  \n\n \n') == empty_document()


def test_sanitize_legacy_string():
    result = sanitize('hello\n\nworld')
    assert [b.data['text'] for b in result.document.blocks] == ['hello', 'world']
    assert result.repairs


def test_sanitize_empty_string():
    result = sanitize('')
    assert result.document == empty_document()
    assert result.repairs


def test_sanitize_none_is_silent():
    result = sanitize(None)
    assert result.document == empty_document()
    assert result.repairs == ()


def test_sanitize_unrecognised_values():
    for raw in (42, ['a'], {'blocks': 'nope'}, {'time': 1}):
        result = sanitize(raw)
        assert result.document == empty_document()
        assert len(result.repairs) == 1


def test_sanitize_replaces_malformed_blocks_with_empty_paragraphs():
    raw = {'blocks': [
        'garbage',
        {'type': 'paragraph'},
        {'type': 7, 'data': {}},
        {'id': 'ok', 'type': 'paragraph', 'data': {'text': 'kept'}},
    ]}
    result = sanitize(raw)
    blocks = result.document.blocks
    assert [b.type for b in blocks] == ['paragraph'] * 4
    assert [b.data['text'] for b in blocks] == ['', '', '', 'kept']
    assert blocks[3].id == 'ok'
    assert len(result.repairs) == 3
    assert 'block 0' in result.repairs[0]


def test_sanitize_repairs_header_fields():
    raw = {'blocks': [
        {'type': 'header', 'data': {'text': 5, 'level': 9}},
        {'type': 'header', 'data': {'text': 'ok', 'level': True}},
        {'type': 'header', 'data': {'text': 'fine', 'level': 4}},
    ]}
    result = sanitize(raw)
    first, second, third = result.document.blocks
    assert first.data == {'text': '', 'level': 2}
    assert second.data == {'text': 'ok', 'level': 2}
    assert third.data == {'text': 'fine', 'level': 4}
    assert len(result.repairs) == 3


def test_sanitize_passes_unknown_kinds_through():
    raw = {'blocks': [{'type': 'embed', 'data': {'service': 'youtube'}}]}
    result = sanitize(raw)
    assert result.document.blocks[0].type == 'embed'
    assert result.document.blocks[0].kind is None
    assert result.repairs == ()


def test_sanitize_no_blocks_gives_canonical_empty():
    result = sanitize({'blocks': []})
    assert result.document == empty_document()
    assert result.repairs


def test_sanitize_is_idempotent():
    raws = [
        'legacy\n\ntext',
        {'blocks': [None, {'type': 'header', 'data': {'level': 0}}], 'time': 5},
        {'blocks': [{'type': 'list', 'data': {'style': 'ordered', 'items': ['a']}}]},
        None,
    ]
    for raw in raws:
        once = sanitize(raw).document
        twice = sanitize(once)
        assert twice.document == once
        assert twice.repairs == ()


def test_sanitize_does_not_mutate_input():
    data = {'text': 'x', 'level': 12}
    raw = {'blocks': [{'type': 'header', 'data': data}]}
    sanitize(raw)
    assert data == {'text': 'x', 'level': 12}


def test_sanitize_keeps_time_and_version():
    raw = {'time': 1700000000000, 'version': '2.30.0',
           'blocks': [{'type': 'paragraph', 'data': {'text': 'a'}}]}
    document = sanitize(raw).document
    assert document.time == 1700000000000
    assert document.version == '2.30.0'
    assert document.to_dict() == raw


def test_document_shape_checks():
    assert is_document_shaped(empty_document())
    assert is_document_shaped({'blocks': []})
    assert not is_document_shaped({'blocks': ['x']})
    assert not is_document_shaped('text')

    assert coerce_document({'blocks': [{'type': 'paragraph', 'data': {'text': 'a'}}]}) \
        == Document(blocks=(paragraph('a'),))
    assert coerce_document({'blocks': [{'data': {}}]}) is None
    assert coerce_document(None) is None


def test_block_kind_lookup():
    assert BlockKind.of('checklist') is BlockKind.CHECKLIST
    assert BlockKind.of('embed') is None
