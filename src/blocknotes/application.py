# SPDX-License-Identifier: GPL-3.0-or-later

import logging
import os

import gi
gi.require_version('Gtk', '4.0')
gi.require_version('Adw', '1')

from gi.repository import Adw, Gdk, Gio, GLib, GObject, Gtk

from blocknotes.constants import APP_ID, APP_NAME, APP_VERSION
from blocknotes.errors import BlockNotesError, StorageError
from blocknotes.export_import import (
    commit_import,
    export_filename,
    export_json,
    read_import,
    write_export,
)
from blocknotes.main_window import MainWindow
from blocknotes.note import NoteIdentity
from blocknotes.note_store import ConflictResolution, NoteStore
from blocknotes.settings import AppSettings, validate_settings

log = logging.getLogger(__name__)


class BlockNotesApp(Adw.Application):

    __gsignals__ = {
        'note-changed': (GObject.SignalFlags.RUN_LAST, None, (str,)),
        'note-created': (GObject.SignalFlags.RUN_LAST, None, (str,)),
        'note-deleted': (GObject.SignalFlags.RUN_LAST, None, (str,)),
        'settings-changed': (GObject.SignalFlags.RUN_LAST, None, ()),
    }

    def __init__(self, version=APP_VERSION, ai_service=None, **kwargs):
        super().__init__(
            application_id=APP_ID,
            flags=Gio.ApplicationFlags.DEFAULT_FLAGS,
            **kwargs,
        )
        self.version = version
        # AiTextService used by note windows; AI actions are disabled without one
        self.ai_service = ai_service
        self.store = None
        self.settings = AppSettings()
        # Last known saved state per note id, shared by the editors
        self.note_cache = {}
        self._note_windows = {}

    def do_startup(self):
        Adw.Application.do_startup(self)
        self.store = NoteStore()
        try:
            self.settings = AppSettings.from_stored(self.store.load_settings())
        except StorageError as e:
            log.error('Loading settings failed: %s', e)
        self._load_css()
        self._setup_actions()
        self._setup_shortcuts()
        self.apply_settings()

    def do_shutdown(self):
        if self.store is not None:
            self.store.close()
        Adw.Application.do_shutdown(self)

    def _load_css(self):
        css_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'style.css')
        if not os.path.exists(css_path):
            return
        css_provider = Gtk.CssProvider()
        css_provider.load_from_path(css_path)
        Gtk.StyleContext.add_provider_for_display(
            Gdk.Display.get_default(),
            css_provider,
            Gtk.STYLE_PROVIDER_PRIORITY_APPLICATION,
        )

    def _setup_actions(self):
        actions = [
            ('new-note', self._on_new_note, None),
            ('export-all', self._on_export_all, None),
            ('import', self._on_import, None),
            ('about', self._on_about, None),
            ('quit', self._on_quit, None),
            ('preferences', self._on_preferences, None),
            ('shortcuts', self._on_shortcuts, None),
        ]
        for name, callback, param_type in actions:
            action = Gio.SimpleAction.new(name, param_type)
            action.connect('activate', callback)
            self.add_action(action)

    def _setup_shortcuts(self):
        self.set_accels_for_action('app.new-note', ['<Control>n'])
        self.set_accels_for_action('app.quit', ['<Control>q'])
        self.set_accels_for_action('app.shortcuts', ['<Control>question'])
        self.set_accels_for_action('app.preferences', ['<Control>comma'])

    def do_activate(self):
        win = self._main_window()
        if win is None:
            win = MainWindow(application=self)
        win.present()

    def _main_window(self):
        for win in self.get_windows():
            if isinstance(win, MainWindow):
                return win
        return None

    # --- Settings ---

    def apply_settings(self):
        style_manager = Adw.StyleManager.get_default()
        if self.settings.theme == 'dark':
            style_manager.set_color_scheme(Adw.ColorScheme.FORCE_DARK)
        else:
            style_manager.set_color_scheme(Adw.ColorScheme.FORCE_LIGHT)

    def update_settings(self, settings):
        try:
            self.store.save_settings(settings)
        except StorageError as e:
            log.error('Saving settings failed: %s', e)
            self.show_message('Could not save preferences')
            return False
        self.settings = settings
        self.apply_settings()
        self.emit('settings-changed')
        return True

    # --- Note windows ---

    def open_note(self, note_id, initial_document=None):
        from blocknotes.note_window import NoteWindow

        if note_id in self._note_windows:
            self._note_windows[note_id].present()
            return

        win = NoteWindow(application=self, identity=NoteIdentity.persisted(note_id),
                         initial_document=initial_document)
        self._note_windows[note_id] = win
        win.present()

    def rekey_note_window(self, old_key, new_key):
        win = self._note_windows.pop(old_key, None)
        if win is not None:
            self._note_windows[new_key] = win

    def forget_note_window(self, key):
        self._note_windows.pop(key, None)

    def discard_note_window(self, note_id):
        """Close a note's window without writing its pending edits."""
        win = self._note_windows.pop(note_id, None)
        if win is not None:
            win.discard()

    def show_message(self, message):
        win = self._main_window()
        if win is not None:
            win.show_toast(message)

    def _on_new_note(self, action, param):
        from blocknotes.note_window import NoteWindow

        # Drafts are stored on the first save with content
        identity = NoteIdentity.draft()
        win = NoteWindow(application=self, identity=identity)
        self._note_windows[identity.value] = win
        win.present()

    # --- Export / import ---

    def _json_filter(self):
        json_filter = Gtk.FileFilter()
        json_filter.set_name('JSON files')
        json_filter.add_pattern('*.json')
        filters = Gio.ListStore.new(Gtk.FileFilter)
        filters.append(json_filter)
        return filters

    def _on_export_all(self, action, param):
        dialog = Gtk.FileDialog(
            initial_name=export_filename('json'),
            filters=self._json_filter(),
        )
        dialog.save(self.get_active_window(), None, self._on_export_file_chosen)

    def _on_export_file_chosen(self, dialog, result):
        try:
            file = dialog.save_finish(result)
        except GLib.Error:
            # Dismissed
            return
        try:
            notes = self.store.get_all_notes()
            write_export(file.get_path(), export_json(notes, self.settings))
        except (StorageError, OSError) as e:
            log.error('Export failed: %s', e)
            self.show_message(f'Export failed: {e}')
            return
        log.info('Exported %d notes to %s', len(notes), file.get_path())
        self.show_message(f'Exported {len(notes)} note{"s" if len(notes) != 1 else ""}')

    def _on_import(self, action, param):
        dialog = Gtk.FileDialog(filters=self._json_filter())
        dialog.open(self.get_active_window(), None, self._on_import_file_chosen)

    def _on_import_file_chosen(self, dialog, result):
        try:
            file = dialog.open_finish(result)
        except GLib.Error:
            return
        try:
            parsed = read_import(file.get_path())
        except BlockNotesError as e:
            log.error('Import of %s rejected: %s', file.get_path(), e)
            self._alert('Import Failed', str(e))
            return
        except OSError as e:
            log.error('Import of %s failed: %s', file.get_path(), e)
            self._alert('Import Failed', e.strerror or str(e))
            return

        for warning in parsed.warnings:
            self.show_message(warning)

        try:
            existing = {note.id for note in self.store.get_all_notes()}
        except StorageError as e:
            self._alert('Import Failed', str(e))
            return
        conflicts = [note for note in parsed.notes if note.id in existing]
        if not conflicts:
            self._commit_import(parsed, ConflictResolution.OVERWRITE)
            return

        count = len(conflicts)
        dialog = Adw.AlertDialog(
            heading='Some Notes Already Exist',
            body=f'{count} imported note{"s" if count != 1 else ""} '
                 'share an id with an existing note.',
        )
        dialog.add_response('cancel', 'Cancel')
        dialog.add_response(ConflictResolution.SKIP.value, 'Skip')
        dialog.add_response(ConflictResolution.KEEP_BOTH.value, 'Keep Both')
        dialog.add_response(ConflictResolution.OVERWRITE.value, 'Overwrite')
        dialog.set_response_appearance(
            ConflictResolution.OVERWRITE.value, Adw.ResponseAppearance.DESTRUCTIVE)
        dialog.connect('response', self._on_conflict_response, parsed)
        dialog.present(self.get_active_window())

    def _on_conflict_response(self, dialog, response, parsed):
        if response == 'cancel':
            return
        self._commit_import(parsed, ConflictResolution(response))

    def _commit_import(self, parsed, resolution):
        try:
            written = commit_import(self.store, parsed, resolution)
        except StorageError as e:
            log.error('Import failed: %s', e)
            self._alert('Import Failed', str(e))
            return
        self.note_cache.clear()
        self.emit('note-changed', '')
        self.show_message(f'Imported {written} note{"s" if written != 1 else ""}')

        if parsed.settings:
            dialog = Adw.AlertDialog(
                heading='Apply Imported Settings?',
                body='The file also contains preferences.',
            )
            dialog.add_response('keep', 'Keep Current')
            dialog.add_response('apply', 'Apply')
            dialog.set_response_appearance('apply', Adw.ResponseAppearance.SUGGESTED)
            dialog.connect('response', self._on_settings_response, parsed.settings)
            dialog.present(self.get_active_window())

    def _on_settings_response(self, dialog, response, raw_settings):
        if response != 'apply':
            return
        accepted, rejected = validate_settings(raw_settings)
        if self.update_settings(self.settings.merged(accepted)) and rejected:
            self.show_message(f'Ignored invalid settings: {", ".join(rejected)}')

    def _alert(self, heading, body):
        dialog = Adw.AlertDialog(heading=heading, body=body)
        dialog.add_response('close', 'Close')
        dialog.present(self.get_active_window())

    # --- Misc ---

    def _on_about(self, action, param):
        about = Adw.AboutDialog(
            application_name=APP_NAME,
            application_icon=APP_ID,
            developer_name='The BlockNotes Authors',
            version=self.version,
            copyright='Copyright 2026 The BlockNotes Authors',
            license_type=Gtk.License.GPL_3_0,
        )
        about.present(self.get_active_window())

    def _on_quit(self, action, param):
        for win in list(self._note_windows.values()):
            win.close()
        self.quit()

    def _on_preferences(self, action, param):
        from blocknotes.preferences import PreferencesWindow
        win = PreferencesWindow(application=self)
        win.present(self.get_active_window())

    def _on_shortcuts(self, action, param):
        from blocknotes.shortcuts import ShortcutsWindow
        win = ShortcutsWindow(transient_for=self.get_active_window())
        win.present()
