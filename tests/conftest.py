# SPDX-License-Identifier: GPL-3.0-or-later

import pytest
from gi.repository import GLib

from blocknotes.document import Document, paragraph
from blocknotes.editor import BlockEditor
from blocknotes.note_store import NoteStore


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    # keep every test away from the real user data dir
    monkeypatch.setenv('BLOCKNOTES_DATA_DIR', str(tmp_path / 'data'))
    return tmp_path / 'data'


@pytest.fixture()
def store(tmp_path):
    s = NoteStore(tmp_path / 'notes.db')
    yield s
    s.close()


def spin(ms):
    """Run the default GLib main context for roughly ms milliseconds."""
    loop = GLib.MainLoop()
    GLib.timeout_add(ms, loop.quit)
    loop.run()


def doc(*texts):
    return Document(blocks=tuple(paragraph(t) for t in texts))


class FakeEditor(BlockEditor):

    def __init__(self, surface, config):
        self.surface = surface
        self.config = config
        self.document = config.initial_document
        self.destroyed = False
        self.fail_save = False
        surface.append(self)

    def edit(self, document):
        self.document = document
        self.config.on_content_changed(document)

    def save(self):
        if self.fail_save:
            raise RuntimeError('editor is busy')
        return self.document

    def render(self, document):
        self.document = document

    def clear(self):
        self.document = None

    def destroy(self):
        self.destroyed = True
        self.surface.remove(self)


class FakeSurface:

    def __init__(self):
        self.children = []

    def append(self, child):
        self.children.append(child)

    def remove(self, child):
        self.children.remove(child)


@pytest.fixture()
def surface():
    return FakeSurface()
