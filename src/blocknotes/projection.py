# SPDX-License-Identifier: GPL-3.0-or-later
"""
Lossy textual renderings of a Document.

All projections accept a Document, a raw document mapping or None, and
return '' when the block sequence is missing or malformed.
"""

import html
import re

from blocknotes.document import Block, BlockKind, Document, document_from_text, strip_markup

_INLINE_MARKDOWN = [
    (re.compile(r'<(?:b|strong)>(.*?)</(?:b|strong)>', re.S), r'**\1**'),
    (re.compile(r'<(?:i|em)>(.*?)</(?:i|em)>', re.S), r'*\1*'),
    (re.compile(r'<(?:s|del|strike)>(.*?)</(?:s|del|strike)>', re.S), r'~~\1~~'),
    (re.compile(r'<code[^>]*>(.*?)</code>', re.S), r'`\1`'),
    (re.compile(r'<a\s[^>]*href="([^"]*)"[^>]*>(.*?)</a>', re.S), r'[\2](\1)'),
]
_BR_RE = re.compile(r'<br\s*/?>', re.I)

PLAIN_RULE = '-' * 30
ELLIPSIS = '...'


def _blocks_of(document):
    if isinstance(document, Document):
        return list(document.blocks)
    if not isinstance(document, dict):
        return []
    raw_blocks = document.get('blocks')
    if not isinstance(raw_blocks, (list, tuple)):
        return []
    blocks = []
    for raw in raw_blocks:
        if isinstance(raw, Block):
            blocks.append(raw)
        elif isinstance(raw, dict) and isinstance(raw.get('type'), str) \
                and isinstance(raw.get('data'), dict):
            blocks.append(Block(type=raw['type'], data=raw['data']))
    return blocks


def _text(value) -> str:
    """Inline markup to bare text."""
    if not isinstance(value, str):
        return ''
    return html.unescape(strip_markup(_BR_RE.sub('\n', value)))


def _md_inline(value) -> str:
    if not isinstance(value, str):
        return ''
    value = _BR_RE.sub('\n', value)
    for pattern, repl in _INLINE_MARKDOWN:
        value = pattern.sub(repl, value)
    return html.unescape(strip_markup(value))


def _list_items(data):
    """Flatten list items; nested items may be dicts with content/items."""
    out = []
    items = data.get('items')
    if not isinstance(items, list):
        return out
    for item in items:
        if isinstance(item, str):
            out.append(item)
        elif isinstance(item, dict):
            content = item.get('content', item.get('text'))
            if isinstance(content, str):
                out.append(content)
            out.extend(_list_items(item))
    return out


def _checklist_items(data):
    items = data.get('items')
    if not isinstance(items, list):
        return []
    return [
        (item.get('text', ''), bool(item.get('checked')))
        for item in items if isinstance(item, dict)
    ]


def _table_rows(data):
    content = data.get('content')
    if not isinstance(content, list):
        return []
    return [
        [_text(cell) for cell in row]
        for row in content if isinstance(row, list)
    ]


def _is_ordered(data) -> bool:
    return data.get('style') == 'ordered'


def _join(*parts, sep=' ') -> str:
    return sep.join(p for p in parts if p)


# --- Flat text ---

_FLAT = {
    BlockKind.PARAGRAPH: lambda d: _text(d.get('text')),
    BlockKind.HEADER: lambda d: _text(d.get('text')),
    BlockKind.LIST: lambda d: _join(*(_text(i) for i in _list_items(d))),
    BlockKind.CHECKLIST: lambda d: _join(*(_text(t) for t, _ in _checklist_items(d))),
    BlockKind.QUOTE: lambda d: _join(_text(d.get('text')), _text(d.get('caption'))),
    BlockKind.CODE: lambda d: strip_markup(d['code']) if isinstance(d.get('code'), str) else '',
    BlockKind.DELIMITER: lambda d: '',
    BlockKind.IMAGE: lambda d: _text(d.get('caption')),
    BlockKind.TABLE: lambda d: _join(*(_join(*row) for row in _table_rows(d))),
    BlockKind.WARNING: lambda d: _join(_text(d.get('title')), _text(d.get('message'))),
}


# --- Markdown ---

def _md_list(d):
    items = _list_items(d)
    if _is_ordered(d):
        return '\n'.join(f'{n}. {_md_inline(item)}' for n, item in enumerate(items, 1))
    return '\n'.join(f'* {_md_inline(item)}' for item in items)


def _md_quote(d):
    lines = [f'> {line}' for line in _md_inline(d.get('text')).split('\n')]
    caption = _md_inline(d.get('caption'))
    if caption:
        lines.append(f'> -- {caption}')
    return '\n'.join(lines)


def _md_code(d):
    code = d.get('code') if isinstance(d.get('code'), str) else ''
    language = d.get('language') if isinstance(d.get('language'), str) else ''
    return f'```{language}\n{code}\n```'


def _md_image(d):
    url = d.get('url') if isinstance(d.get('url'), str) else ''
    if not url and isinstance(d.get('file'), dict):
        url = d['file'].get('url', '')
    caption = _text(d.get('caption'))
    alt = _text(d.get('alt')) or caption
    image = f'![{alt}]({url})'
    if caption:
        return f'{image}\n*{caption}*'
    return image


def _md_table(d):
    rows = _table_rows(d)
    if not rows:
        return ''
    if d.get('withHeadings'):
        head, body = rows[0], rows[1:]
        lines = [' | '.join(head), ' | '.join('---' for _ in head)]
        lines.extend(' | '.join(row) for row in body)
        return '\n'.join(lines)
    return '\n'.join('\t'.join(row) for row in rows)


def _md_header(d):
    level = d.get('level')
    if isinstance(level, bool) or not isinstance(level, int) or not 1 <= level <= 6:
        level = 2
    return f"{'#' * level} {_md_inline(d.get('text'))}"


def _md_warning(d):
    return _join(f"**{_md_inline(d.get('title'))}**", _md_inline(d.get('message')), sep='\n')


_MARKDOWN = {
    BlockKind.PARAGRAPH: lambda d: _md_inline(d.get('text')),
    BlockKind.HEADER: _md_header,
    BlockKind.LIST: _md_list,
    BlockKind.QUOTE: _md_quote,
    BlockKind.CODE: _md_code,
    BlockKind.DELIMITER: lambda d: '---',
    BlockKind.IMAGE: _md_image,
    BlockKind.CHECKLIST: lambda d: '\n'.join(
        f"[{'x' if checked else ' '}] {_md_inline(text)}" for text, checked in _checklist_items(d)),
    BlockKind.TABLE: _md_table,
    BlockKind.WARNING: _md_warning,
}


# --- Plain text ---

def _plain_list(d):
    items = _list_items(d)
    if _is_ordered(d):
        return '\n'.join(f'{n}. {_text(item)}' for n, item in enumerate(items, 1))
    return '\n'.join(f'- {_text(item)}' for item in items)


def _plain_quote(d):
    quote = f'"{_text(d.get("text"))}"'
    caption = _text(d.get('caption'))
    if caption:
        return f'{quote}\n-- {caption}'
    return quote


def _plain_code(d):
    code = d.get('code') if isinstance(d.get('code'), str) else ''
    language = d.get('language') if isinstance(d.get('language'), str) else ''
    return f'--- Code ({language}) ---\n{code}\n--- End Code ---'


def _plain_image(d):
    url = d.get('url') if isinstance(d.get('url'), str) else ''
    if not url and isinstance(d.get('file'), dict):
        url = d['file'].get('url', '')
    caption = _text(d.get('caption')) or _text(d.get('alt'))
    return f'[Image: {caption} ({url})]' if caption else f'[Image: {url}]'


_PLAIN = {
    BlockKind.PARAGRAPH: lambda d: _text(d.get('text')),
    BlockKind.HEADER: lambda d: _text(d.get('text')),
    BlockKind.LIST: _plain_list,
    BlockKind.QUOTE: _plain_quote,
    BlockKind.CODE: _plain_code,
    BlockKind.DELIMITER: lambda d: PLAIN_RULE,
    BlockKind.IMAGE: _plain_image,
    BlockKind.CHECKLIST: lambda d: '\n'.join(
        f"[{'x' if checked else ' '}] {_text(text)}" for text, checked in _checklist_items(d)),
    BlockKind.TABLE: lambda d: '\n'.join('\t'.join(row) for row in _table_rows(d)),
    BlockKind.WARNING: lambda d: _join(_text(d.get('title')), _text(d.get('message')), sep=': '),
}

for _table in (_FLAT, _MARKDOWN, _PLAIN):
    _missing = set(BlockKind) - set(_table)
    if _missing:
        raise RuntimeError(f'projection table lacks block kinds: {sorted(_missing)}')


def _render(document, table, fallback, sep) -> str:
    parts = []
    for block in _blocks_of(document):
        kind = block.kind
        if kind is None:
            rendered = fallback(block.data.get('text'))
        else:
            rendered = table[kind](block.data)
        if rendered:
            parts.append(rendered)
    return sep.join(parts)


def to_flat_text(document) -> str:
    """Plain concatenation used for search indexing and AI context."""
    return _render(document, _FLAT, _text, '\n')


def to_markdown(document) -> str:
    return _render(document, _MARKDOWN, _md_inline, '\n\n')


def to_plain_text(document) -> str:
    return _render(document, _PLAIN, _text, '\n\n')


def summarize(document, max_chars) -> str:
    """Preview text from the first three blocks, at most max_chars long.

    Truncated text ends with an ellipsis, counted within max_chars.
    """
    parts = []
    for block in _blocks_of(document)[:3]:
        if block.kind in (BlockKind.HEADER, BlockKind.PARAGRAPH):
            parts.append(_text(block.data.get('text')))
        elif block.kind is BlockKind.LIST:
            parts.append(_join(*(_text(i) for i in _list_items(block.data))))
    text = _join(*(p.strip() for p in parts))
    if len(text) > max_chars:
        if max_chars <= len(ELLIPSIS):
            return text[:max_chars]
        return text[:max_chars - len(ELLIPSIS)].rstrip() + ELLIPSIS
    return text


def from_plain_text(text) -> Document:
    return document_from_text(text)
