# SPDX-License-Identifier: GPL-3.0-or-later

from blocknotes.document import Block, Document, paragraph
from blocknotes.projection import (
    PLAIN_RULE,
    from_plain_text,
    summarize,
    to_flat_text,
    to_markdown,
    to_plain_text,
)


def block(kind, **data):
    return Block(type=kind, data=data)


SAMPLE = Document(blocks=(
    block('header', text='Plan', level=2),
    paragraph('Buy <b>milk</b> &amp; eggs'),
    block('list', style='ordered', items=['one', 'two']),
    block('checklist', items=[{'text': 'done', 'checked': True},
                              {'text': 'todo', 'checked': False}]),
    block('quote', text='Be brief', caption='Someone'),
    block('code', code='print(1)', language='python'),
    block('delimiter'),
    block('image', url='https://example.com/a.png', caption='A cat'),
    block('table', withHeadings=True, content=[['a', 'b'], ['1', '2']]),
    block('warning', title='Careful', message='Hot'),
))


def test_flat_text():
    assert to_flat_text(SAMPLE).split('\n') == [
        'Plan',
        'Buy milk & eggs',
        'one two',
        'done todo',
        'Be brief Someone',
        'print(1)',
        'A cat',
        'a b 1 2',
        'Careful Hot',
    ]


def test_markdown():
    assert to_markdown(SAMPLE).split('\n\n') == [
        '## Plan',
        'Buy **milk** & eggs',
        '1. one\n2. two',
        '[x] done\n[ ] todo',
        '> Be brief\n> -- Someone',
        '```python\nprint(1)\n```',
        '---',
        '![A cat](https://example.com/a.png)\n*A cat*',
        'a | b\n--- | ---\n1 | 2',
        '**Careful**\nHot',
    ]


def test_plain_text():
    assert to_plain_text(SAMPLE).split('\n\n') == [
        'Plan',
        'Buy milk & eggs',
        '1. one\n2. two',
        '[x] done\n[ ] todo',
        '"Be brief"\n-- Someone',
        '--- Code (python) ---\nprint(1)\n--- End Code ---',
        PLAIN_RULE,
        '[Image: A cat (https://example.com/a.png)]',
        'a\tb\n1\t2',
        'Careful: Hot',
    ]


def test_unordered_and_nested_lists():
    document = Document(blocks=(
        block('list', style='unordered', items=[
            {'content': 'outer', 'items': [{'content': 'inner', 'items': []}]},
            'plain',
        ]),
    ))
    assert to_markdown(document) == '* outer\n* inner\n* plain'
    assert to_plain_text(document) == '- outer\n- inner\n- plain'
    assert to_flat_text(document) == 'outer inner plain'


def test_markdown_inline_formatting():
    document = Document(blocks=(
        paragraph('<i>a</i> <s>b</s> <code>c</code> <a href="https://x.org">d</a><br>e'),
    ))
    assert to_markdown(document) == '*a* ~~b~~ `c` [d](https://x.org)\ne'


def test_table_without_headings():
    document = Document(blocks=(block('table', content=[['a', 'b'], ['c', 'd']]),))
    assert to_markdown(document) == 'a\tb\nc\td'


def test_unknown_kind_uses_text_field():
    document = {'blocks': [
        {'type': 'embed', 'data': {'text': 'caption'}},
        {'type': 'raw', 'data': {'html': '<div/>'}},
    ]}
    assert to_flat_text(document) == 'caption'
    assert to_markdown(document) == 'caption'
    assert to_plain_text(document) == 'caption'


def test_malformed_input_yields_empty_text():
    for raw in (None, 'text', {'blocks': 'x'}, {}):
        assert to_flat_text(raw) == ''
        assert to_markdown(raw) == ''
        assert to_plain_text(raw) == ''


def test_malformed_blocks_are_skipped():
    raw = {'blocks': [None, {'type': 'paragraph'}, {'type': 'paragraph', 'data': {'text': 'ok'}}]}
    assert to_flat_text(raw) == 'ok'


def test_empty_renderings_are_omitted():
    document = Document(blocks=(paragraph(''), paragraph('a'), paragraph(''), paragraph('b')))
    assert to_flat_text(document) == 'a\nb'
    assert to_plain_text(document) == 'a\n\nb'


def test_summarize_uses_first_three_blocks():
    document = Document(blocks=(
        block('header', text='Title', level=1),
        block('code', code='skipped'),
        block('list', items=['x', 'y']),
        paragraph('too late'),
    ))
    assert summarize(document, 100) == 'Title x y'


def test_summarize_truncates():
    document = Document(blocks=(paragraph('abcdefghij'),))
    assert summarize(document, 6) == 'abc...'
    assert summarize(document, 10) == 'abcdefghij'
    assert len(summarize(Document(blocks=(paragraph('a' * 50),)), 10)) == 10
    assert summarize(document, 2) == 'ab'
    assert summarize(None, 10) == ''


def test_from_plain_text_round_trips_paragraphs():
    document = from_plain_text('one\n\ntwo')
    assert to_plain_text(document) == 'one\n\ntwo'


def test_flat_text_strips_markup_from_code():
    document = Document(blocks=(block('code', code='<div>x</div> if a<b'),))
    assert to_flat_text(document) == 'x if a<b'
    assert '<div>' not in to_flat_text(document)
