# SPDX-License-Identifier: GPL-3.0-or-later

import logging

import gi
gi.require_version('Gtk', '4.0')
gi.require_version('Adw', '1')

from gi.repository import Adw, Gdk, Gio, GLib, GObject, Gtk

from blocknotes.auto_save import Debounce
from blocknotes.constants import APP_ID, APP_NAME, SEARCH_DELAY_MS
from blocknotes.errors import StorageError
from blocknotes.note_card import NoteCard
from blocknotes.settings import SORT_LABELS, sort_notes

log = logging.getLogger(__name__)

# (section, [(label, detailed action), ...])
_PRIMARY_MENU = (
    ('data', [
        ('Import Notes…', 'app.import'),
        ('Export All Notes…', 'app.export-all'),
    ]),
    ('app', [
        ('Keyboard Shortcuts', 'app.shortcuts'),
        ('Preferences', 'app.preferences'),
        (f'About {APP_NAME}', 'app.about'),
    ]),
)


def _clear(container):
    child = container.get_first_child()
    while child:
        next_child = child.get_next_sibling()
        container.remove(child)
        child = next_child


def _confirm(parent, heading, body, callback):
    """Destructive yes/no dialog; callback runs only on confirmation."""
    dialog = Adw.AlertDialog(heading=heading, body=body)
    dialog.add_response('cancel', 'Cancel')
    dialog.add_response('delete', 'Delete')
    dialog.set_response_appearance('delete', Adw.ResponseAppearance.DESTRUCTIVE)
    dialog.connect('response', lambda d, response: response == 'delete' and callback())
    dialog.present(parent)


class TagFilterBar(Gtk.ScrolledWindow):
    """Horizontal row of tag chips; at most one tag is selected at a time."""

    __gsignals__ = {
        'filter-changed': (GObject.SignalFlags.RUN_LAST, None, ()),
        'delete-requested': (GObject.SignalFlags.RUN_LAST, None, (str,)),
    }

    def __init__(self, **kwargs):
        super().__init__(
            hscrollbar_policy=Gtk.PolicyType.AUTOMATIC,
            vscrollbar_policy=Gtk.PolicyType.NEVER,
            visible=False,
            **kwargs,
        )
        self.selected = None
        self._updating = False
        self._box = Gtk.Box(
            orientation=Gtk.Orientation.HORIZONTAL,
            spacing=6,
            margin_start=12,
            margin_end=12,
            margin_top=6,
            margin_bottom=6,
        )
        self.set_child(self._box)

    def set_tags(self, tags):
        """Rebuild the chips; a selected tag that no longer exists is dropped."""
        if self.selected not in {t.name for t in tags}:
            self.selected = None
        self._updating = True
        _clear(self._box)
        self.set_visible(bool(tags))
        if tags:
            self._box.append(self._chip('All', None))
            for tag in tags:
                chip = self._chip(f'{tag.name} ({tag.note_count})', tag.name)
                gesture = Gtk.GestureClick(button=Gdk.BUTTON_SECONDARY)
                gesture.connect('pressed', self._on_right_click, tag.name, chip)
                chip.add_controller(gesture)
                self._box.append(chip)
        self._updating = False

    def _chip(self, label, tag_name):
        chip = Gtk.ToggleButton(label=label, active=self.selected == tag_name)
        chip.add_css_class('tag-chip')
        chip.connect('toggled', self._on_toggled, tag_name)
        return chip

    def _on_toggled(self, chip, tag_name):
        if self._updating:
            return
        if not chip.get_active():
            if self.selected == tag_name and tag_name is not None:
                self.selected = None
                self.emit('filter-changed')
            return
        self.selected = tag_name
        self._updating = True
        child = self._box.get_first_child()
        while child:
            if child is not chip:
                child.set_active(False)
            child = child.get_next_sibling()
        self._updating = False
        self.emit('filter-changed')

    def _on_right_click(self, gesture, n_press, x, y, tag_name, chip):
        popover = Gtk.Popover()
        popover.set_parent(chip)
        delete_btn = Gtk.Button(label='Delete Tag')
        delete_btn.add_css_class('flat')
        delete_btn.connect(
            'clicked', lambda b: (popover.popdown(), self.emit('delete-requested', tag_name)))
        popover.set_child(delete_btn)
        popover.connect('closed', lambda p: p.unparent())
        popover.popup()


class MainWindow(Adw.ApplicationWindow):

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._app = self.get_application()
        self._search_query = ''
        self._search_debounce = Debounce(self._refresh_notes, SEARCH_DELAY_MS)

        self.set_title(APP_NAME)
        self.set_default_size(900, 650)
        self.set_icon_name(APP_ID)

        self._setup_actions()
        self._build_ui()
        self._app.connect('note-changed', lambda app, note_id: self.refresh())
        self._app.connect('note-created', lambda app, note_id: self.refresh())
        self._app.connect('note-deleted', lambda app, note_id: self.refresh())
        self._app.connect('settings-changed', self._on_settings_changed)
        self.refresh()

    def _setup_actions(self):
        self._sort_action = Gio.SimpleAction.new_stateful(
            'sort',
            GLib.VariantType.new('s'),
            GLib.Variant('s', self._app.settings.default_sort),
        )
        self._sort_action.connect('activate', self._on_sort_selected)
        self.add_action(self._sort_action)

    def _header_bar(self):
        header = Adw.HeaderBar()

        self._search_btn = Gtk.ToggleButton(icon_name='system-search-symbolic')
        self._search_btn.connect('toggled', self._on_search_toggled)
        header.pack_start(self._search_btn)

        menu = Gio.Menu()
        for _, entries in _PRIMARY_MENU:
            section = Gio.Menu()
            for label, action in entries:
                section.append(label, action)
            menu.append_section(None, section)
        header.pack_end(Gtk.MenuButton(icon_name='open-menu-symbolic', menu_model=menu))

        sort_menu = Gio.Menu()
        for option, label in SORT_LABELS.items():
            sort_menu.append(label, f'win.sort::{option.value}')
        header.pack_end(Gtk.MenuButton(
            icon_name='view-sort-descending-symbolic',
            tooltip_text='Sort Notes',
            menu_model=sort_menu,
        ))
        return header

    def _build_ui(self):
        toolbar_view = Adw.ToolbarView()
        toolbar_view.add_top_bar(self._header_bar())

        self._search_bar = Gtk.SearchBar()
        self._search_entry = Gtk.SearchEntry(placeholder_text='Search notes...')
        self._search_entry.connect('search-changed', self._on_search_changed)
        self._search_bar.set_child(self._search_entry)
        self._search_bar.connect_entry(self._search_entry)
        toolbar_view.add_top_bar(self._search_bar)

        self._tag_bar = TagFilterBar()
        self._tag_bar.connect('filter-changed', lambda bar: self._refresh_notes())
        self._tag_bar.connect('delete-requested', self._on_delete_tag)

        self._notes_grid = Gtk.FlowBox(
            selection_mode=Gtk.SelectionMode.NONE,
            homogeneous=False,
            max_children_per_line=6,
            min_children_per_line=2,
            row_spacing=8,
            column_spacing=8,
            margin_start=12,
            margin_end=12,
            margin_top=8,
            margin_bottom=8,
        )
        self._notes_grid.add_css_class('notes-grid')

        self._notes_stack = Gtk.Stack()
        self._notes_stack.add_named(
            Gtk.ScrolledWindow(vexpand=True, child=self._notes_grid), 'grid')
        self._notes_stack.add_named(Adw.StatusPage(
            icon_name='document-new-symbolic',
            title='No Notes Yet',
            description='Press + or Ctrl+N to create your first note',
        ), 'empty')
        self._notes_stack.add_named(Adw.StatusPage(
            icon_name='system-search-symbolic',
            title='No Matching Notes',
            description='Try a different search or tag',
        ), 'no-results')

        notes_page = Gtk.Box(orientation=Gtk.Orientation.VERTICAL)
        notes_page.append(self._tag_bar)
        notes_page.append(self._notes_stack)
        toolbar_view.set_content(notes_page)

        # Toasts only show when the overlay wraps the whole view
        self._toast_overlay = Adw.ToastOverlay(child=toolbar_view)

        fab = Gtk.Button(
            icon_name='list-add-symbolic',
            tooltip_text='New Note (Ctrl+N)',
            halign=Gtk.Align.END,
            valign=Gtk.Align.END,
            margin_end=24,
            margin_bottom=24,
        )
        for css_class in ('fab', 'suggested-action', 'circular'):
            fab.add_css_class(css_class)
        fab.connect('clicked', lambda b: self._app.activate_action('new-note'))

        overlay = Gtk.Overlay(child=self._toast_overlay)
        overlay.add_overlay(fab)
        self.set_content(overlay)

    def refresh(self):
        try:
            tags = self._app.store.get_all_tags()
        except StorageError as e:
            log.error('Loading tags failed: %s', e)
            tags = []
        self._tag_bar.set_tags(tags)
        self._refresh_notes()

    def _on_settings_changed(self, app):
        self._sort_action.set_state(GLib.Variant('s', app.settings.default_sort))
        self._refresh_notes()

    def _on_sort_selected(self, action, value):
        option = value.get_string()
        if option == self._app.settings.default_sort:
            return
        self._app.update_settings(self._app.settings.merged({'defaultSort': option}))

    # --- Search ---

    def _on_search_toggled(self, btn):
        active = btn.get_active()
        self._search_bar.set_search_mode(active)
        if active:
            self._search_entry.grab_focus()
            return
        self._search_debounce.cancel()
        self._search_query = ''
        self._search_entry.set_text('')
        self._refresh_notes()

    def _on_search_changed(self, entry):
        self._search_query = entry.get_text().strip()
        self._search_debounce.trigger()

    # --- Notes ---

    def _load_notes(self):
        store = self._app.store
        tag = self._tag_bar.selected
        if self._search_query:
            # Search results keep their relevance order
            notes = store.search_notes(self._search_query)
            return [n for n in notes if tag in n.tags] if tag else notes
        notes = store.get_notes_by_tag(tag) if tag else store.get_all_notes()
        return sort_notes(notes, self._app.settings.default_sort)

    def _refresh_notes(self):
        _clear(self._notes_grid)
        try:
            notes = self._load_notes()
        except StorageError as e:
            log.error('Loading notes failed: %s', e)
            self.show_toast('Could not load notes')
            notes = []

        if not notes:
            filtered = bool(self._search_query or self._tag_bar.selected)
            self._notes_stack.set_visible_child_name('no-results' if filtered else 'empty')
            return

        self._notes_stack.set_visible_child_name('grid')
        for note in notes:
            card = NoteCard(note)
            card.connect('activated', lambda c, note_id: self._app.open_note(note_id))
            card.connect('delete-requested', self._on_note_delete_requested)
            self._notes_grid.append(card)

    def _on_note_delete_requested(self, card, note_id):
        _confirm(self, 'Delete Note Permanently?', 'This action cannot be undone.',
                 lambda: self._delete_note(note_id))

    def _delete_note(self, note_id):
        self._app.discard_note_window(note_id)
        try:
            self._app.store.delete_note(note_id)
        except StorageError as e:
            self.show_toast(f'Could not delete the note: {e}')
            return
        self._app.note_cache.pop(note_id, None)
        self._app.emit('note-deleted', note_id)
        self.show_toast('Note deleted')

    # --- Tags ---

    def _on_delete_tag(self, bar, tag_name):
        _confirm(self, f'Delete Tag ‘{tag_name}’?', 'This will remove the tag from all notes.',
                 lambda: self._delete_tag(tag_name))

    def _delete_tag(self, tag_name):
        try:
            self._app.store.delete_tag(tag_name)
        except StorageError as e:
            self.show_toast(f'Could not delete the tag: {e}')
            return
        self._app.note_cache.clear()
        self.refresh()

    def show_toast(self, message, button_label=None, callback=None):
        toast = Adw.Toast(title=message, timeout=5)
        if button_label and callback:
            toast.set_button_label(button_label)
            toast.connect('button-clicked', lambda t: callback())
        self._toast_overlay.add_toast(toast)
