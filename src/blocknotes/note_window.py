# SPDX-License-Identifier: GPL-3.0-or-later

import logging

import gi
gi.require_version('Gtk', '4.0')
gi.require_version('Adw', '1')

from gi.repository import Adw, Gdk, Gio, GLib, Gtk

from blocknotes.ai import ACTIONS as AI_ACTIONS, AiAssistant
from blocknotes.constants import MAX_TAGS
from blocknotes.editor_controller import EditorController, EditorState
from blocknotes.errors import StorageError
from blocknotes.export_import import (
    export_filename,
    note_to_markdown,
    note_to_plain_text,
    write_export,
)
from blocknotes.note import NoteIdentity, normalize_tags
from blocknotes.reconciler import AutosaveReconciler, SaveOutcome
from blocknotes.rich_text_serializer import BULLET_PREFIX, HEADER_TAGS, PRESERVED_TAG, TAG_NAMES
from blocknotes.rich_text_toolbar import CHARACTER_FORMATS, LINE_FORMATS, RichTextToolbar
from blocknotes.text_view_editor import TextViewEditor

log = logging.getLogger(__name__)


class NoteWindow(Adw.Window):

    def __init__(self, application, identity, initial_document=None, **kwargs):
        super().__init__(
            application=application,
            **kwargs,
        )
        self._app = application
        self.identity = identity
        self._reconciler = None
        self._loading_title = False

        self.set_default_size(480, 560)
        self.set_title('Untitled Note')

        self._build_ui()
        self._setup_actions()

        self._controller = EditorController(
            application.store,
            TextViewEditor,
            placeholder_text='Start writing…',
            cache=application.note_cache,
        )
        self._controller.connect('note-loaded', self._on_note_loaded)
        self._controller.connect('content-changed', self._on_content_changed)
        self._controller.connect('state-changed', self._on_editor_state_changed)
        self._controller.connect('not-found', self._on_not_found)
        self._controller.connect('editor-error', self._on_editor_error)

        if self._controller.load(identity, initial_document):
            self._controller.attach_surface(self._editor_holder)

    def _build_ui(self):
        main_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL)

        # Header bar
        self._header = Adw.HeaderBar()
        self._header.add_css_class('flat')

        save_btn = Gtk.Button(
            icon_name='document-save-symbolic',
            tooltip_text='Save (Ctrl+S)',
        )
        save_btn.connect('clicked', lambda b: self.save())
        self._header.pack_start(save_btn)

        export_menu = Gio.Menu()
        export_menu.append('Export as Markdown', 'note.export-markdown')
        export_menu.append('Export as Text', 'note.export-text')
        export_btn = Gtk.MenuButton(
            icon_name='document-send-symbolic',
            tooltip_text='Export',
            menu_model=export_menu,
        )
        self._header.pack_start(export_btn)

        delete_btn = Gtk.Button(
            icon_name='user-trash-symbolic',
            tooltip_text='Delete Note',
        )
        delete_btn.connect('clicked', self._on_delete)
        self._header.pack_end(delete_btn)

        tags_btn = Gtk.Button(
            icon_name='tag-symbolic',
            tooltip_text='Manage Tags',
        )
        tags_btn.connect('clicked', self._on_manage_tags)
        self._header.pack_end(tags_btn)

        ai_menu = Gio.Menu()
        for name, label in AI_ACTIONS:
            ai_menu.append(label, f'note.ai-{name}')
        self._header.pack_end(Gtk.MenuButton(
            icon_name='starred-symbolic',
            tooltip_text='AI Assistant',
            menu_model=ai_menu,
        ))

        main_box.append(self._header)

        # Title entry
        self._title_entry = Gtk.Entry(
            placeholder_text='Note title...',
        )
        self._title_entry.add_css_class('note-title-entry')
        self._title_entry.connect('changed', self._on_title_changed)
        main_box.append(self._title_entry)

        # Rich text toolbar
        self._toolbar = RichTextToolbar()
        self._toolbar.connect('format-toggled', self._on_format_toggled)
        main_box.append(self._toolbar)
        main_box.append(Gtk.Separator())

        # The editor is mounted here by the controller
        self._editor_holder = Gtk.Box(
            orientation=Gtk.Orientation.VERTICAL,
            vexpand=True, hexpand=True,
        )
        self._spinner = Gtk.Spinner(spinning=True, vexpand=True)
        self._editor_holder.append(self._spinner)
        main_box.append(self._editor_holder)

        # Tags display bar
        self._tags_bar = Gtk.FlowBox(
            selection_mode=Gtk.SelectionMode.NONE,
            max_children_per_line=MAX_TAGS,
            min_children_per_line=1,
        )
        self._tags_bar.set_visible(False)
        main_box.append(self._tags_bar)

        self._toast_overlay = Adw.ToastOverlay()
        self._toast_overlay.set_child(main_box)
        self.set_content(self._toast_overlay)

    def _setup_actions(self):
        action_group = Gio.SimpleActionGroup()
        actions = [
            ('save', lambda a, p: self.save()),
            ('export-markdown', lambda a, p: self._on_export('md')),
            ('export-text', lambda a, p: self._on_export('txt')),
        ]
        for name, callback in actions:
            action = Gio.SimpleAction.new(name, None)
            action.connect('activate', callback)
            action_group.add_action(action)
        for name, _, _, _ in CHARACTER_FORMATS:
            action = Gio.SimpleAction.new(name, None)
            action.connect('activate', self._action_format, name)
            action_group.add_action(action)
        for name, _, _, _ in LINE_FORMATS:
            action = Gio.SimpleAction.new(name, None)
            action.connect('activate', self._action_line_format, name)
            action_group.add_action(action)
        for name, _ in AI_ACTIONS:
            action = Gio.SimpleAction.new(f'ai-{name}', None)
            action.set_enabled(self._app.ai_service is not None)
            action.connect('activate', self._on_ai_action, name)
            action_group.add_action(action)

        self.insert_action_group('note', action_group)

        self._app.set_accels_for_action('note.save', ['<Control>s'])
        for name, _, _, accel in CHARACTER_FORMATS + LINE_FORMATS:
            self._app.set_accels_for_action(f'note.{name}', [accel])

        shortcuts = Gtk.ShortcutController()
        shortcuts.add_shortcut(Gtk.Shortcut(
            trigger=Gtk.ShortcutTrigger.parse_string('Escape'),
            action=Gtk.CallbackAction.new(lambda widget, args: widget.close() or True),
        ))
        self.add_controller(shortcuts)

    # --- Controller signals ---

    def _on_note_loaded(self, controller, note):
        self._loading_title = True
        self._title_entry.set_text(note.title or '')
        self._loading_title = False
        self.set_title(note.title or 'Untitled Note')

        if self._reconciler is None:
            self._reconciler = AutosaveReconciler(self._app.store, note, controller.identity)
            self._reconciler.connect('saved', self._on_saved)
            self._reconciler.connect('save-failed', self._on_save_failed)
            self._reconciler.connect('identity-changed', self._on_identity_changed)
            self._reconciler.connect('empty-draft-rejected', self._on_empty_draft_rejected)
        else:
            self._reconciler.reset(note, controller.identity)
        self._update_tags_bar()

    def _on_content_changed(self, controller, document):
        if self._reconciler is not None:
            self._reconciler.set_document(document)

    def _on_editor_state_changed(self, controller, state):
        if state != EditorState.MOUNTED.value:
            return
        if self._spinner.get_parent() is not None:
            self._editor_holder.remove(self._spinner)
        editor = controller.editor
        editor.buffer.connect('mark-set', self._on_cursor_moved)
        key_controller = Gtk.EventControllerKey()
        key_controller.connect('key-pressed', self._on_key_pressed)
        editor.text_view.add_controller(key_controller)
        editor.text_view.grab_focus()

    def _on_not_found(self, controller, note_id):
        self._app.show_message('That note no longer exists')
        GLib.idle_add(self.discard)

    def _on_editor_error(self, controller, message):
        self._show_toast(message, 'Retry', lambda: controller.retry_mount())

    # --- Reconciler signals ---

    def _on_saved(self, reconciler, note_id):
        self._app.note_cache[note_id] = reconciler.snapshot()
        self._app.emit('note-changed', note_id)

    def _on_save_failed(self, reconciler, message):
        self._show_toast('Could not save the note; your changes are kept', 'Retry', self.save)

    def _on_identity_changed(self, reconciler, note_id):
        old_key = self.identity.value
        self.identity = NoteIdentity.persisted(note_id)
        self._controller.adopt_identity(self.identity)
        self._app.rekey_note_window(old_key, note_id)
        self._app.emit('note-created', note_id)

    def _on_empty_draft_rejected(self, reconciler):
        self._show_toast('Add a title or some text before saving')

    # --- Editing ---

    def _on_title_changed(self, entry):
        if self._loading_title or self._reconciler is None:
            return
        title = entry.get_text()
        self.set_title(title or 'Untitled Note')
        self._reconciler.set_title(title)

    def save(self) -> SaveOutcome | None:
        if self._reconciler is None:
            return None
        outcome = self._reconciler.save_now(self._controller.query_document)
        if outcome in (SaveOutcome.SAVED, SaveOutcome.CREATED, SaveOutcome.UNCHANGED):
            self._show_toast('Note saved')
        return outcome

    def _buffer(self):
        editor = self._controller.editor
        return editor.buffer if editor is not None else None

    def _format_applied(self):
        editor = self._controller.editor
        if editor is not None:
            editor.notify_format_changed()

    def _on_cursor_moved(self, buffer, iter_, mark):
        if mark.get_name() == 'insert':
            self._update_toolbar_state()

    def _update_toolbar_state(self):
        buffer = self._buffer()
        if buffer is None:
            return
        insert = buffer.get_iter_at_mark(buffer.get_insert())
        line_start = insert.copy()
        line_start.set_line_offset(0)
        active = set()
        for tag in insert.get_tags():
            name = tag.get_property('name')
            if name in TAG_NAMES:
                active.add(name)
        for tag in line_start.get_tags():
            name = tag.get_property('name')
            if name in HEADER_TAGS or name == 'bullet':
                active.add(name)
        self._toolbar.update_state(active)

    def _on_format_toggled(self, toolbar, format_name, is_active):
        buffer = self._buffer()
        if buffer is None:
            return
        if format_name == 'bullet':
            self._toggle_bullet(buffer)
            return
        if format_name in HEADER_TAGS:
            self._set_heading(buffer, format_name if is_active else None)
            return

        bounds = buffer.get_selection_bounds()
        if not bounds:
            return

        start, end = bounds
        tag = buffer.get_tag_table().lookup(format_name)
        if tag is None:
            return

        if is_active:
            buffer.apply_tag(tag, start, end)
        else:
            buffer.remove_tag(tag, start, end)
        self._format_applied()

    def _action_format(self, action, param, format_name):
        buffer = self._buffer()
        if buffer is None:
            return
        bounds = buffer.get_selection_bounds()
        if not bounds:
            return

        start, end = bounds
        tag = buffer.get_tag_table().lookup(format_name)
        if tag is None:
            return

        if start.has_tag(tag):
            buffer.remove_tag(tag, start, end)
        else:
            buffer.apply_tag(tag, start, end)
        self._update_toolbar_state()
        self._format_applied()

    def _action_line_format(self, action, param, format_name):
        buffer = self._buffer()
        if buffer is None:
            return
        if format_name == 'bullet':
            self._toggle_bullet(buffer)
            self._update_toolbar_state()
            return
        _, line_start, _ = self._current_line_bounds(buffer)
        tag = buffer.get_tag_table().lookup(format_name)
        active = tag is not None and line_start.has_tag(tag)
        self._set_heading(buffer, None if active else format_name)

    def _current_line_bounds(self, buffer):
        insert = buffer.get_iter_at_mark(buffer.get_insert())
        line_num = insert.get_line()
        _, line_start = buffer.get_iter_at_line(line_num)
        _, line_end = buffer.get_iter_at_line(line_num)
        if not line_end.ends_line():
            line_end.forward_to_line_end()
        return line_num, line_start, line_end

    def _line_is_read_only(self, line_start):
        tag = line_start.get_buffer().get_tag_table().lookup(PRESERVED_TAG)
        return tag is not None and line_start.has_tag(tag)

    def _set_heading(self, buffer, heading):
        _, line_start, line_end = self._current_line_bounds(buffer)
        if self._line_is_read_only(line_start):
            return
        table = buffer.get_tag_table()
        for name in HEADER_TAGS:
            buffer.remove_tag(table.lookup(name), line_start, line_end)
        if heading:
            buffer.apply_tag(table.lookup(heading), line_start, line_end)
        self._update_toolbar_state()
        self._format_applied()

    def _toggle_bullet(self, buffer):
        line_num, line_start, line_end = self._current_line_bounds(buffer)
        if self._line_is_read_only(line_start):
            return
        bullet_tag = buffer.get_tag_table().lookup('bullet')
        if bullet_tag is None:
            return

        if line_start.has_tag(bullet_tag):
            buffer.remove_tag(bullet_tag, line_start, line_end)
            text = buffer.get_text(line_start, line_end, True)
            if text.startswith(BULLET_PREFIX):
                _, prefix_end = buffer.get_iter_at_line(line_num)
                prefix_end.forward_chars(len(BULLET_PREFIX))
                _, delete_start = buffer.get_iter_at_line(line_num)
                buffer.delete(delete_start, prefix_end)
        else:
            # Insert bullet prefix first
            buffer.insert(line_start, BULLET_PREFIX)
            # Re-fetch iterators after modification
            _, line_start, line_end = self._current_line_bounds(buffer)
            buffer.apply_tag(bullet_tag, line_start, line_end)
        self._format_applied()

    def _on_key_pressed(self, controller, keyval, keycode, state):
        if keyval not in (Gdk.KEY_Return, Gdk.KEY_KP_Enter):
            return Gdk.EVENT_PROPAGATE
        buffer = self._buffer()
        if buffer is None:
            return Gdk.EVENT_PROPAGATE

        # Auto-continue bullet list
        insert = buffer.get_iter_at_mark(buffer.get_insert())
        line_start = insert.copy()
        line_start.set_line_offset(0)
        bullet_tag = buffer.get_tag_table().lookup('bullet')
        if not (bullet_tag and line_start.has_tag(bullet_tag)):
            return Gdk.EVENT_PROPAGATE

        line_end = insert.copy()
        if not line_end.ends_line():
            line_end.forward_to_line_end()
        text = buffer.get_text(line_start, line_end, True)
        if text.strip() == BULLET_PREFIX.strip():
            # Empty bullet: remove it and stop the list
            buffer.remove_tag(bullet_tag, line_start, line_end)
            buffer.delete(line_start, line_end)
            self._format_applied()
            return Gdk.EVENT_STOP

        buffer.insert_at_cursor('\n' + BULLET_PREFIX)
        new_insert = buffer.get_iter_at_mark(buffer.get_insert())
        new_line_start = new_insert.copy()
        new_line_start.set_line_offset(0)
        buffer.apply_tag(bullet_tag, new_line_start, new_insert)
        self._format_applied()
        return Gdk.EVENT_STOP

    # --- Tags ---

    def _on_manage_tags(self, btn):
        if self._reconciler is None:
            return
        dialog = Adw.AlertDialog(
            heading='Manage Tags',
            body=f'Enter up to {MAX_TAGS} tags separated by commas:',
        )
        dialog.add_response('cancel', 'Cancel')
        dialog.add_response('save', 'Save')
        dialog.set_response_appearance('save', Adw.ResponseAppearance.SUGGESTED)

        entry = Gtk.Entry(
            text=', '.join(self._reconciler.tags),
            hexpand=True,
        )
        dialog.set_extra_child(entry)
        dialog.connect('response', self._on_tags_response, entry)
        dialog.present(self)

    def _on_tags_response(self, dialog, response, entry):
        if response != 'save':
            return
        raw_tags = entry.get_text().split(',')
        tags = normalize_tags(raw_tags)
        if len([t for t in raw_tags if t.strip()]) > len(tags):
            self._show_toast(f'Duplicate tags dropped; at most {MAX_TAGS} are kept')
        self._reconciler.set_tags(tags)
        self._update_tags_bar()

    def _update_tags_bar(self):
        child = self._tags_bar.get_first_child()
        while child:
            next_child = child.get_next_sibling()
            self._tags_bar.remove(child)
            child = next_child

        tags = self._reconciler.tags if self._reconciler else []
        self._tags_bar.set_visible(bool(tags))
        for tag_name in tags:
            label = Gtk.Label(label=tag_name)
            label.add_css_class('tag-chip')
            self._tags_bar.append(label)

    # --- AI assistant ---

    def _on_ai_action(self, action, param, name):
        if self._reconciler is None or self._app.ai_service is None:
            return
        assistant = AiAssistant(self._app.ai_service, self._app.settings)
        message = assistant.run(name, self._controller, self._reconciler)
        if message:
            self._show_toast(message)
        elif name == 'suggest-tags':
            self._update_tags_bar()
            self._show_toast('Suggested tags added')

    # --- Export / delete ---

    def _on_export(self, extension):
        if self._reconciler is None:
            return
        self._reconciler.observe(document=self._controller.query_document(), schedule=False)
        note = self._reconciler.snapshot()
        text = note_to_markdown(note) if extension == 'md' else note_to_plain_text(note)

        dialog = Gtk.FileDialog(initial_name=export_filename(extension, note))
        dialog.save(self, None, self._on_export_file_chosen, text)

    def _on_export_file_chosen(self, dialog, result, text):
        try:
            file = dialog.save_finish(result)
        except GLib.Error:
            # Dismissed
            return
        try:
            write_export(file.get_path(), text)
        except OSError as e:
            log.error('Export failed: %s', e)
            self._show_toast(f'Export failed: {e.strerror}')
            return
        self._show_toast('Note exported')

    def _on_delete(self, btn):
        if self.identity.is_draft:
            self.discard()
            return
        dialog = Adw.AlertDialog(
            heading='Delete Note Permanently?',
            body='This action cannot be undone.',
        )
        dialog.add_response('cancel', 'Cancel')
        dialog.add_response('delete', 'Delete')
        dialog.set_response_appearance('delete', Adw.ResponseAppearance.DESTRUCTIVE)
        dialog.connect('response', self._on_delete_confirmed)
        dialog.present(self)

    def _on_delete_confirmed(self, dialog, response):
        if response != 'delete':
            return
        note_id = self.identity.value
        try:
            self._app.store.delete_note(note_id)
        except StorageError as e:
            self._show_toast(f'Could not delete the note: {e}')
            return
        self._app.note_cache.pop(note_id, None)
        self._app.emit('note-deleted', note_id)
        self.discard()

    def discard(self):
        if self._reconciler is not None:
            self._reconciler.cancel()
            self._reconciler = None
        self.close()
        return GLib.SOURCE_REMOVE

    def _show_toast(self, message, button_label=None, callback=None):
        toast = Adw.Toast(title=message, timeout=5)
        if button_label and callback:
            toast.set_button_label(button_label)
            toast.connect('button-clicked', lambda t: callback())
        self._toast_overlay.add_toast(toast)

    def do_close_request(self):
        if self._reconciler is not None:
            self._reconciler.save_now(self._controller.query_document)
            self._reconciler.cancel()
        self._controller.destroy()
        self._app.forget_note_window(self.identity.value)
        return False
