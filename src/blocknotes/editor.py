# SPDX-License-Identifier: GPL-3.0-or-later
"""Capability interface for an embeddable block editor."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from blocknotes.document import Document


@dataclass
class EditorConfig:
    initial_document: Document
    placeholder_text: str
    on_content_changed: Callable[[Document], None]


class BlockEditor(ABC):
    """An editor instance owned by the host surface.

    Any method may raise; callers treat failures as recoverable.
    """

    @abstractmethod
    def save(self) -> Document:
        """Return the current content."""

    @abstractmethod
    def render(self, document):
        """Replace the content."""

    @abstractmethod
    def destroy(self):
        ...

    @abstractmethod
    def clear(self):
        ...
