# SPDX-License-Identifier: GPL-3.0-or-later
"""Glue between an AI text service and the note being edited."""

import logging
from abc import ABC, abstractmethod

from blocknotes.document import document_from_text
from blocknotes.errors import AiServiceError
from blocknotes.projection import to_flat_text

log = logging.getLogger(__name__)

# (action name, menu label)
ACTIONS = (
    ('rewrite', 'Rewrite Note'),
    ('suggest-tags', 'Suggest Tags'),
)


class AiTextService(ABC):
    """Text in, text out. Implementations raise AiServiceError on failure."""

    @abstractmethod
    def rewrite(self, text, language, model) -> str:
        ...

    @abstractmethod
    def suggest_tags(self, text, language, model) -> list[str]:
        ...


class AiAssistant:

    def __init__(self, service, settings):
        self._service = service
        self._settings = settings

    def _context(self, controller):
        return to_flat_text(controller.query_document())

    def apply_rewrite(self, controller):
        """Replace the editor content with the service's rewrite.

        Returns an error message for the user, or None on success.
        """
        text = self._context(controller)
        if not text.strip():
            return 'Nothing to rewrite'
        try:
            result = self._service.rewrite(text, self._settings.language, self._settings.ai_model)
        except AiServiceError as e:
            log.error('AI rewrite failed: %s', e)
            return str(e)
        controller.rerender(document_from_text(result))
        return None

    def apply_tag_suggestions(self, controller, reconciler):
        text = self._context(controller)
        try:
            tags = self._service.suggest_tags(text, self._settings.language, self._settings.ai_model)
        except AiServiceError as e:
            log.error('AI tag suggestion failed: %s', e)
            return str(e)
        reconciler.add_tags(tags)
        return None

    def run(self, action, controller, reconciler):
        """Dispatch one of ACTIONS by name; returns an error message or None."""
        if action == 'rewrite':
            return self.apply_rewrite(controller)
        if action == 'suggest-tags':
            return self.apply_tag_suggestions(controller, reconciler)
        raise ValueError(f'unknown AI action: {action}')
