# SPDX-License-Identifier: GPL-3.0-or-later

import gi
gi.require_version('Gtk', '4.0')

from gi.repository import Gtk

from blocknotes.editor import BlockEditor
from blocknotes.errors import EditorConstructionError
from blocknotes.rich_text_serializer import (
    _ensure_tags,
    deserialize_to_buffer,
    serialize_buffer,
)


class TextViewEditor(BlockEditor):
    """Block editor backed by a GtkTextView, packed into a holder box."""

    def __init__(self, holder, config):
        if holder is None or holder.get_root() is None:
            raise EditorConstructionError('editor surface is not attached to a window')

        self._holder = holder
        self._config = config
        self._loading = False
        # anchor -> (block, preview) for the read-only blocks in the buffer
        self._preserved = {}

        self._overlay = Gtk.Overlay(vexpand=True, hexpand=True)
        scrolled = Gtk.ScrolledWindow(vexpand=True, hexpand=True)
        self.text_view = Gtk.TextView(
            wrap_mode=Gtk.WrapMode.WORD_CHAR,
            left_margin=12, right_margin=12,
            top_margin=8, bottom_margin=8,
        )
        self.text_view.add_css_class('note-text-view')
        self.buffer = self.text_view.get_buffer()
        _ensure_tags(self.buffer)
        scrolled.set_child(self.text_view)
        self._overlay.set_child(scrolled)

        self._placeholder = Gtk.Label(
            label=config.placeholder_text,
            xalign=0, yalign=0,
            margin_start=14, margin_top=8,
            can_target=False,
        )
        self._placeholder.add_css_class('dim-label')
        self._overlay.add_overlay(self._placeholder)

        self.render(config.initial_document)
        self._changed_id = self.buffer.connect('changed', self._on_buffer_changed)
        holder.append(self._overlay)

    def _on_buffer_changed(self, buffer):
        self._update_placeholder()
        if not self._loading:
            self._config.on_content_changed(serialize_buffer(buffer, self._preserved))

    def _update_placeholder(self):
        self._placeholder.set_visible(self.buffer.get_char_count() == 0)

    def notify_format_changed(self):
        """Report a tag-only change, which GtkTextBuffer does not signal."""
        self._on_buffer_changed(self.buffer)

    def save(self):
        if self.buffer is None:
            raise RuntimeError('editor has been destroyed')
        return serialize_buffer(self.buffer, self._preserved)

    def render(self, document):
        self._loading = True
        try:
            self._preserved = deserialize_to_buffer(self.buffer, document)
        finally:
            self._loading = False
        self._update_placeholder()

    def clear(self):
        self._preserved = {}
        self.buffer.set_text('')

    def destroy(self):
        if self.buffer is None:
            return
        self.buffer.disconnect(self._changed_id)
        self._holder.remove(self._overlay)
        self.buffer = None
