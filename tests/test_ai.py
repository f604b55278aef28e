# SPDX-License-Identifier: GPL-3.0-or-later

import pytest

from blocknotes.ai import ACTIONS, AiAssistant, AiTextService
from blocknotes.document import Document, paragraph
from blocknotes.errors import AiServiceError
from blocknotes.settings import AppSettings

from conftest import doc


class StubService(AiTextService):

    def __init__(self, rewrite=None, tags=None, error=None):
        self._rewrite = rewrite
        self._tags = tags or []
        self._error = error
        self.calls = []

    def rewrite(self, text, language, model):
        self.calls.append(('rewrite', text, language, model))
        if self._error:
            raise AiServiceError(self._error)
        return self._rewrite

    def suggest_tags(self, text, language, model):
        self.calls.append(('tags', text, language, model))
        if self._error:
            raise AiServiceError(self._error)
        return self._tags


class StubController:

    def __init__(self, document):
        self.document = document
        self.rerendered = []

    def query_document(self):
        return self.document

    def rerender(self, document):
        self.rerendered.append(document)


class StubReconciler:

    def __init__(self):
        self.added = []

    def add_tags(self, tags):
        self.added.extend(tags)


SETTINGS = AppSettings(language='zh')


def test_rewrite_replaces_editor_content():
    service = StubService(rewrite='First\n\nSecond')
    controller = StubController(Document(blocks=(paragraph('<b>old</b> text'),)))
    assert AiAssistant(service, SETTINGS).apply_rewrite(controller) is None
    assert service.calls == [('rewrite', 'old text', 'zh', SETTINGS.ai_model)]
    assert controller.rerendered == [doc('First', 'Second')]


def test_rewrite_of_empty_note_is_refused():
    service = StubService(rewrite='x')
    controller = StubController(doc(''))
    assert AiAssistant(service, SETTINGS).apply_rewrite(controller) == 'Nothing to rewrite'
    assert service.calls == []


def test_rewrite_failure_is_reported_not_retried():
    service = StubService(error='quota exceeded')
    controller = StubController(doc('text'))
    assert AiAssistant(service, SETTINGS).apply_rewrite(controller) == 'quota exceeded'
    assert len(service.calls) == 1
    assert controller.rerendered == []


def test_tag_suggestions_are_merged():
    service = StubService(tags=['travel', 'plans'])
    reconciler = StubReconciler()
    message = AiAssistant(service, SETTINGS).apply_tag_suggestions(StubController(doc('trip')), reconciler)
    assert message is None
    assert reconciler.added == ['travel', 'plans']


def test_tag_suggestion_failure():
    reconciler = StubReconciler()
    service = StubService(error='offline')
    assert AiAssistant(service, SETTINGS).apply_tag_suggestions(StubController(doc('x')), reconciler) == 'offline'
    assert reconciler.added == []


def test_run_dispatches_every_menu_action():
    service = StubService(rewrite='new', tags=['x'])
    assistant = AiAssistant(service, SETTINGS)
    controller = StubController(doc('body'))
    reconciler = StubReconciler()
    for name, _ in ACTIONS:
        assert assistant.run(name, controller, reconciler) is None
    assert [call[0] for call in service.calls] == ['rewrite', 'tags']
    assert controller.rerendered == [doc('new')]
    assert reconciler.added == ['x']


def test_run_reports_service_errors():
    assistant = AiAssistant(StubService(error='no key'), SETTINGS)
    assert assistant.run('suggest-tags', StubController(doc('x')), StubReconciler()) == 'no key'


def test_run_rejects_unknown_action():
    with pytest.raises(ValueError):
        AiAssistant(StubService(), SETTINGS).run('translate', StubController(doc('x')), StubReconciler())
