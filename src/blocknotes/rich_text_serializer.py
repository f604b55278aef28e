# SPDX-License-Identifier: GPL-3.0-or-later
"""
Rich text serialization between GtkTextBuffer and Documents.

Each editable buffer line becomes one block:
  - lines tagged h1..h6     -> header blocks
  - lines tagged bullet     -> items of an unordered list block (consecutive
                               bullet lines share one block)
  - anything else           -> paragraph blocks

Character formatting is carried in block text as inline HTML:
  bold <b>, italic <i>, underline <u>, strikethrough <s>

Blocks a text buffer cannot edit (code, tables, checklists, images, ordered
or nested lists, unknown kinds) are shown read-only as their plain-text
rendering under a per-block anchor tag, and serialize back to the original
block as long as that text is intact.
"""

import html
from html.parser import HTMLParser
from typing import NamedTuple, Optional

from blocknotes.document import Block, BlockKind, Document, empty_document, paragraph
from blocknotes.projection import to_plain_text

TAG_NAMES = {'bold', 'italic', 'underline', 'strikethrough'}
HEADER_TAGS = {f'h{level}': level for level in range(1, 7)}
BULLET_PREFIX = '• '
PRESERVED_TAG = 'preserved'
ANCHOR_PREFIX = 'preserved-'

_HTML_TO_TAG = {
    'b': 'bold', 'strong': 'bold',
    'i': 'italic', 'em': 'italic',
    'u': 'underline',
    's': 'strikethrough', 'del': 'strikethrough', 'strike': 'strikethrough',
}
_TAG_TO_HTML = (('bold', 'b'), ('italic', 'i'), ('underline', 'u'), ('strikethrough', 's'))

_HEADER_SCALE = {1: 2.0, 2: 1.6, 3: 1.35, 4: 1.2, 5: 1.1, 6: 1.0}


class BufferLine(NamedTuple):
    """One buffer line, or the anchored part of one.

    text is inline HTML for editable lines and plain text for anchored ones.
    """
    text: str
    line_tag: Optional[str] = None
    anchor: Optional[str] = None


class _RunParser(HTMLParser):

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.runs = []
        self._open = []

    def handle_starttag(self, tag, attrs):
        if tag == 'br':
            self._append('\n')
        elif tag in _HTML_TO_TAG:
            self._open.append(_HTML_TO_TAG[tag])

    def handle_endtag(self, tag):
        name = _HTML_TO_TAG.get(tag)
        if name in self._open:
            # Close the innermost matching tag
            del self._open[len(self._open) - 1 - self._open[::-1].index(name)]

    def handle_data(self, data):
        self._append(data)

    def _append(self, text):
        tags = frozenset(self._open)
        if self.runs and self.runs[-1][1] == tags:
            self.runs[-1] = (self.runs[-1][0] + text, tags)
        else:
            self.runs.append((text, tags))


def runs_from_html(text) -> list:
    """Split inline HTML into (text, frozenset of tag names) runs."""
    if not isinstance(text, str) or not text:
        return []
    parser = _RunParser()
    parser.feed(text)
    parser.close()
    return [(t, tags) for t, tags in parser.runs if t]


def html_from_runs(runs) -> str:
    out = []
    for text, tags in runs:
        piece = html.escape(text, quote=False)
        for name, element in reversed(_TAG_TO_HTML):
            if name in tags:
                piece = f'<{element}>{piece}</{element}>'
        out.append(piece)
    return ''.join(out)


# --- Document <-> lines ---

def _editable_lines(block):
    """BufferLines for a block the buffer can edit, else None."""
    kind = block.kind
    text = block.data.get('text')
    if kind is BlockKind.PARAGRAPH and isinstance(text, str):
        return [BufferLine(text)]
    if kind is BlockKind.HEADER and isinstance(text, str):
        level = block.data.get('level')
        if level in HEADER_TAGS.values() and not isinstance(level, bool):
            return [BufferLine(text, f'h{level}')]
    if kind is BlockKind.LIST and block.data.get('style', 'unordered') == 'unordered':
        items = block.data.get('items')
        if isinstance(items, list) and items and all(isinstance(i, str) for i in items):
            return [BufferLine(BULLET_PREFIX + item, 'bullet') for item in items]
    return None


def preview_text(block) -> str:
    """Read-only rendering of a block the buffer cannot edit."""
    return to_plain_text(Document(blocks=(block,))) or f'[{block.type}]'


def layout_document(document):
    """Lay a Document out as buffer lines.

    Returns (lines, preserved) where preserved maps each anchor to the
    (block, preview text) it stands for.
    """
    lines = []
    preserved = {}
    if document is None:
        return lines, preserved
    for index, block in enumerate(document.blocks):
        editable = _editable_lines(block)
        if editable is not None:
            lines.extend(editable)
            continue
        anchor = f'{ANCHOR_PREFIX}{index}'
        preview = preview_text(block)
        preserved[anchor] = (block, preview)
        lines.extend(BufferLine(line, anchor=anchor) for line in preview.split('\n'))
    return lines, preserved


def document_from_lines(lines, preserved) -> Document:
    """Rebuild a Document from buffer lines.

    Consecutive lines under one anchor turn back into the preserved block
    when their text still matches its preview, and into paragraphs when not.
    """
    blocks = []
    list_items = None
    group = None

    def flush_group():
        if group is None:
            return
        anchor, texts = group
        block, preview = preserved.get(anchor, (None, None))
        if block is not None and '\n'.join(texts) == preview:
            blocks.append(block)
        else:
            blocks.extend(paragraph(html.escape(t, quote=False)) for t in texts)

    for line in lines:
        if line.anchor is not None:
            list_items = None
            if group is not None and group[0] == line.anchor:
                group[1].append(line.text)
            else:
                flush_group()
                group = (line.anchor, [line.text])
            continue
        flush_group()
        group = None

        if line.line_tag == 'bullet':
            text = line.text
            if text.startswith(BULLET_PREFIX):
                text = text[len(BULLET_PREFIX):]
            if list_items is None:
                list_items = []
                blocks.append(Block(
                    type=BlockKind.LIST.value,
                    data={'style': 'unordered', 'items': list_items},
                ))
            list_items.append(text)
            continue
        list_items = None
        level = HEADER_TAGS.get(line.line_tag)
        if level:
            blocks.append(Block(type=BlockKind.HEADER.value, data={'text': line.text, 'level': level}))
        else:
            blocks.append(paragraph(line.text))
    flush_group()

    return Document(blocks=tuple(blocks))


# --- Buffer -> Document ---

def serialize_buffer(text_buffer, preserved=None) -> Document:
    """Serialize a GtkTextBuffer to a Document."""
    start = text_buffer.get_start_iter()
    end = text_buffer.get_end_iter()

    if start.equal(end):
        return empty_document()

    table = text_buffer.get_tag_table()
    line_tags = [name for name in ('bullet', *HEADER_TAGS) if table.lookup(name)]

    lines = []
    for line_num in range(text_buffer.get_line_count()):
        _, line_start = text_buffer.get_iter_at_line(line_num)
        line_end = line_start.copy()
        if not line_end.ends_line():
            line_end.forward_to_line_end()

        if line_start.equal(line_end):
            lines.append(BufferLine('', _line_tag(line_start, table, line_tags),
                                    _anchor_at(line_start)))
            continue

        for anchor, seg_start, seg_end in _segments(line_start, line_end):
            if anchor is not None:
                lines.append(BufferLine(text_buffer.get_text(seg_start, seg_end, True),
                                        anchor=anchor))
            else:
                runs = _extract_runs(text_buffer, seg_start, seg_end)
                lines.append(BufferLine(html_from_runs(runs),
                                        _line_tag(seg_start, table, line_tags)))

    return document_from_lines(lines, preserved or {})


def _anchor_at(text_iter):
    for tag in text_iter.get_tags():
        name = tag.get_property('name')
        if name and name.startswith(ANCHOR_PREFIX):
            return name
    return None


def _segments(line_start, line_end):
    """Split a line into (anchor or None, start, end) stretches."""
    segments = []
    it = line_start.copy()
    while it.compare(line_end) < 0:
        anchor = _anchor_at(it)
        seg_end = it.copy()
        while True:
            if not seg_end.forward_to_tag_toggle(None) or seg_end.compare(line_end) >= 0:
                seg_end = line_end.copy()
                break
            if _anchor_at(seg_end) != anchor:
                break
        segments.append((anchor, it, seg_end))
        it = seg_end.copy()
    return segments


def _line_tag(line_start, table, names):
    for name in names:
        if line_start.has_tag(table.lookup(name)):
            return name
    return None


def _extract_runs(text_buffer, start, end):
    """Extract formatted text runs from a range in the buffer."""
    runs = []
    if start.equal(end):
        return runs

    it = start.copy()
    while it.compare(end) < 0:
        # Get active tags at this position
        active_tags = _get_tag_names(it)

        # Find how far this tag combination extends
        run_end = it.copy()
        while run_end.compare(end) < 0:
            if not run_end.forward_to_tag_toggle(None):
                run_end = end.copy()
                break
            if run_end.compare(end) >= 0:
                run_end = end.copy()
                break
            if _get_tag_names(run_end) != active_tags:
                break

        text = text_buffer.get_text(it, run_end, True)
        if text:
            runs.append((text, frozenset(active_tags)))

        it = run_end.copy()

    return runs


def _get_tag_names(text_iter):
    """Get recognized formatting tag names at a text iterator position."""
    names = set()
    for tag in text_iter.get_tags():
        name = tag.get_property('name')
        if name in TAG_NAMES:
            names.add(name)
    return names


# --- Document -> Buffer ---

def deserialize_to_buffer(text_buffer, document) -> dict:
    """Load a Document into a GtkTextBuffer; returns the preserved blocks."""
    text_buffer.set_text('')
    _ensure_tags(text_buffer)
    lines, preserved = layout_document(document)

    table = text_buffer.get_tag_table()
    anchor_ranges = {}
    for index, line in enumerate(lines):
        if index:
            text_buffer.insert(text_buffer.get_end_iter(), '\n')
        line_start_offset = text_buffer.get_end_iter().get_offset()

        if line.anchor is not None:
            text_buffer.insert(text_buffer.get_end_iter(), line.text)
            first = anchor_ranges.get(line.anchor, (line_start_offset,))[0]
            anchor_ranges[line.anchor] = (first, text_buffer.get_end_iter().get_offset())
            continue

        for text, tags in runs_from_html(line.text):
            start_offset = text_buffer.get_end_iter().get_offset()
            text_buffer.insert(text_buffer.get_end_iter(), text)

            run_start = text_buffer.get_iter_at_offset(start_offset)
            run_end = text_buffer.get_end_iter()
            for tag_name in tags:
                tag = table.lookup(tag_name)
                if tag:
                    text_buffer.apply_tag(tag, run_start, run_end)

        # Apply the line tag to the entire line
        if line.line_tag:
            tag = table.lookup(line.line_tag)
            if tag:
                line_start = text_buffer.get_iter_at_offset(line_start_offset)
                text_buffer.apply_tag(tag, line_start, text_buffer.get_end_iter())

    # Anchors span their block's lines, inner newlines included
    style_tag = table.lookup(PRESERVED_TAG)
    for anchor, (start_offset, end_offset) in anchor_ranges.items():
        tag = table.lookup(anchor) or text_buffer.create_tag(anchor)
        start = text_buffer.get_iter_at_offset(start_offset)
        end = text_buffer.get_iter_at_offset(end_offset)
        text_buffer.apply_tag(tag, start, end)
        text_buffer.apply_tag(style_tag, start, end)
    return preserved


def _ensure_tags(text_buffer):
    """Ensure all formatting tags exist in the buffer's tag table."""
    table = text_buffer.get_tag_table()

    tag_props = {
        'bold': {'weight': 700},
        'italic': {'style': 2},  # Pango.Style.ITALIC
        'underline': {'underline': 1},  # Pango.Underline.SINGLE
        'strikethrough': {'strikethrough': True},
        'bullet': {},
        PRESERVED_TAG: {'editable': False, 'family': 'monospace'},
    }
    for name, level in HEADER_TAGS.items():
        tag_props[name] = {'weight': 700, 'scale': _HEADER_SCALE[level]}

    for name, props in tag_props.items():
        if table.lookup(name) is None:
            text_buffer.create_tag(name, **props)
