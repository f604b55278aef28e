# SPDX-License-Identifier: GPL-3.0-or-later

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum

from blocknotes.constants import MAX_TAGS, SUMMARY_MAX_CHARS
from blocknotes.document import Document, empty_document
from blocknotes.projection import summarize


def now_ms() -> int:
    return int(time.time() * 1000)


class IdentityKind(Enum):
    DRAFT = 'draft'
    PERSISTED = 'persisted'


@dataclass(frozen=True)
class NoteIdentity:
    """Who a note is: a transient draft or a durably stored note."""

    kind: IdentityKind
    value: str

    @classmethod
    def draft(cls) -> 'NoteIdentity':
        return cls(IdentityKind.DRAFT, f'draft-{uuid.uuid4()}')

    @classmethod
    def persisted(cls, note_id) -> 'NoteIdentity':
        return cls(IdentityKind.PERSISTED, note_id)

    @property
    def is_draft(self) -> bool:
        return self.kind is IdentityKind.DRAFT


def normalize_tags(tags) -> list[str]:
    """Strip, drop empties and duplicates (first wins), cap at MAX_TAGS."""
    out = []
    for tag in tags or ():
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if tag and tag not in out:
            out.append(tag)
        if len(out) == MAX_TAGS:
            break
    return out


def tag_set_key(tags) -> frozenset:
    return frozenset(normalize_tags(tags))


@dataclass
class Note:
    id: str
    title: str = ''
    content: Document = field(default_factory=empty_document)
    tags: list[str] = field(default_factory=list)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = 0

    def __post_init__(self):
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @classmethod
    def draft(cls, identity, title='', content=None, tags=None) -> 'Note':
        return cls(
            id=identity.value,
            title=title,
            content=content if content is not None else empty_document(),
            tags=normalize_tags(tags),
        )

    @property
    def preview_text(self) -> str:
        return summarize(self.content, SUMMARY_MAX_CHARS)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content.to_dict(),
            'tags': list(self.tags),
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


@dataclass
class Tag:
    name: str
    note_count: int = 0
