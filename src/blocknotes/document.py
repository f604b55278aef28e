# SPDX-License-Identifier: GPL-3.0-or-later
"""
Block-structured note bodies and their sanitization.

Wire format (compatible with Editor.js output):
{
  "time": 1700000000000,
  "blocks": [
    {"id": "a1b2", "type": "header", "data": {"text": "Hi", "level": 2}},
    {"type": "paragraph", "data": {"text": "hello <b>world</b>"}}
  ],
  "version": "2.28.2"
}

Block text fields may carry inline HTML (<b>, <i>, <u>, <s>, <code>, <a>).
"""

import copy
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from blocknotes.constants import DOCUMENT_FORMAT_VERSION

_BLANK_LINE_RE = re.compile(r'\n[ \t]*\n')
_MARKUP_RE = re.compile(r'<[^>]*>')

DEFAULT_HEADER_LEVEL = 2


class BlockKind(str, Enum):
    PARAGRAPH = 'paragraph'
    HEADER = 'header'
    LIST = 'list'
    QUOTE = 'quote'
    CODE = 'code'
    DELIMITER = 'delimiter'
    IMAGE = 'image'
    CHECKLIST = 'checklist'
    TABLE = 'table'
    WARNING = 'warning'

    @classmethod
    def of(cls, block_type) -> Optional['BlockKind']:
        """Return the kind for a type name, or None for foreign kinds."""
        try:
            return cls(block_type)
        except ValueError:
            return None


@dataclass(frozen=True)
class Block:
    type: str
    data: dict
    id: Optional[str] = None

    @property
    def kind(self) -> Optional[BlockKind]:
        return BlockKind.of(self.type)

    def to_dict(self) -> dict:
        out = {'type': self.type, 'data': copy.deepcopy(self.data)}
        if self.id is not None:
            out = {'id': self.id, **out}
        return out


@dataclass(frozen=True)
class Document:
    blocks: tuple = field(default_factory=tuple)
    time: Optional[int] = None
    version: str = DOCUMENT_FORMAT_VERSION

    def with_blocks(self, blocks, time=None) -> 'Document':
        return replace(self, blocks=tuple(blocks), time=time if time is not None else self.time)

    def to_dict(self) -> dict:
        out = {'blocks': [block.to_dict() for block in self.blocks], 'version': self.version}
        if self.time is not None:
            out = {'time': self.time, **out}
        return out

    @classmethod
    def from_dict(cls, raw) -> 'Document':
        """Build a Document from an already well-shaped mapping (no repairs)."""
        blocks = tuple(
            Block(
                type=b['type'],
                data=copy.deepcopy(b.get('data') or {}),
                id=b['id'] if isinstance(b.get('id'), str) else None,
            )
            for b in raw['blocks']
        )
        return cls(blocks=blocks, time=_optional_time(raw.get('time')),
                   version=_version_of(raw))


@dataclass(frozen=True)
class SanitizeResult:
    document: Document
    repairs: tuple = ()


def paragraph(text='') -> Block:
    return Block(type=BlockKind.PARAGRAPH.value, data={'text': text})


def empty_document() -> Document:
    return Document(blocks=(paragraph(),))


def strip_markup(text) -> str:
    return _MARKUP_RE.sub('', text)


def is_empty_document(document) -> bool:
    """True for zero blocks or a single paragraph with no visible text."""
    if document is None:
        return True
    blocks = document.blocks
    if not blocks:
        return True
    if len(blocks) != 1:
        return False
    block = blocks[0]
    if block.type != BlockKind.PARAGRAPH.value:
        return False
    text = block.data.get('text', '')
    if not isinstance(text, str):
        return True
    return strip_markup(text).replace('&nbsp;', ' ').strip() == ''


def document_from_text(text) -> Document:
    """One paragraph per blank-line separated group of text."""
    if not isinstance(text, str):
        return empty_document()
    groups = [g.strip('\n') for g in _BLANK_LINE_RE.split(text.replace('\r\n', '\n'))]
    blocks = [paragraph(g) for g in groups if g.strip()]
    if not blocks:
        return empty_document()
    return Document(blocks=tuple(blocks))


def is_document_shaped(raw) -> bool:
    if isinstance(raw, Document):
        return True
    if not isinstance(raw, dict):
        return False
    blocks = raw.get('blocks')
    return isinstance(blocks, list) and all(isinstance(b, dict) for b in blocks)


def coerce_document(raw) -> Optional[Document]:
    """Return raw as a Document when it is document-shaped, else None."""
    if isinstance(raw, Document):
        return raw
    if not is_document_shaped(raw):
        return None
    for b in raw['blocks']:
        if not isinstance(b.get('type'), str) or not isinstance(b.get('data', {}), dict):
            return None
    return Document.from_dict(raw)


def sanitize(raw) -> SanitizeResult:
    """Repair legacy or malformed content into a structurally valid Document.

    Never raises. Every repair is described in ``SanitizeResult.repairs``.
    """
    if isinstance(raw, Document):
        raw = raw.to_dict()

    if isinstance(raw, str):
        if not raw.strip():
            return SanitizeResult(empty_document(), ('empty legacy text replaced by empty document',))
        return SanitizeResult(document_from_text(raw), ('legacy text converted to paragraphs',))

    if not isinstance(raw, dict) or not isinstance(raw.get('blocks'), (list, tuple)):
        kind = type(raw).__name__
        if raw is None:
            return SanitizeResult(empty_document())
        return SanitizeResult(empty_document(), (f'unrecognised content ({kind}) replaced by empty document',))

    repairs = []
    blocks = []
    for index, raw_block in enumerate(raw['blocks']):
        block = _sanitize_block(index, raw_block, repairs)
        blocks.append(block)

    if not blocks:
        repairs.append('document had no blocks; replaced by empty document')
        return SanitizeResult(empty_document(), tuple(repairs))
    document = Document(
        blocks=tuple(blocks),
        time=_optional_time(raw.get('time')),
        version=_version_of(raw),
    )
    return SanitizeResult(document, tuple(repairs))


def _sanitize_block(index, raw_block, repairs) -> Block:
    if not isinstance(raw_block, dict):
        repairs.append(f'block {index}: not an object, replaced by empty paragraph')
        return paragraph()
    block_type = raw_block.get('type')
    data = raw_block.get('data')
    block_id = raw_block.get('id') if isinstance(raw_block.get('id'), str) else None
    if not isinstance(block_type, str) or not isinstance(data, dict):
        repairs.append(f'block {index}: missing type or data payload, replaced by empty paragraph')
        return Block(type=BlockKind.PARAGRAPH.value, data={'text': ''}, id=block_id)

    data = copy.deepcopy(data)
    if block_type == BlockKind.HEADER.value:
        if not isinstance(data.get('text'), str):
            repairs.append(f'block {index}: header text was not a string')
            data['text'] = ''
        level = data.get('level')
        if isinstance(level, bool) or not isinstance(level, int) or not 1 <= level <= 6:
            repairs.append(f'block {index}: header level {level!r} reset to {DEFAULT_HEADER_LEVEL}')
            data['level'] = DEFAULT_HEADER_LEVEL
    return Block(type=block_type, data=data, id=block_id)


def _optional_time(value) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _version_of(raw) -> str:
    version = raw.get('version')
    return version if isinstance(version, str) and version else DOCUMENT_FORMAT_VERSION
