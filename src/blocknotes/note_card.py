# SPDX-License-Identifier: GPL-3.0-or-later

from datetime import datetime

import gi
gi.require_version('Gtk', '4.0')

from gi.repository import Gdk, Gio, GObject, Gtk, Pango

CARD_SIZE = 200
CARD_TAG_LIMIT = 3


def format_updated(updated_at_ms, now=None) -> str:
    """Short edit time for a card: clock time today, a date otherwise."""
    updated = datetime.fromtimestamp(updated_at_ms / 1000)
    now = now or datetime.now()
    if updated.date() == now.date():
        return updated.strftime('%H:%M')
    if updated.year == now.year:
        return updated.strftime('%b %d')
    return updated.strftime('%b %d, %Y')


class NoteCard(Gtk.Overlay):
    """Square grid card: title, summary, edit time and up to three tags."""

    __gsignals__ = {
        'activated': (GObject.SignalFlags.RUN_LAST, None, (str,)),
        'delete-requested': (GObject.SignalFlags.RUN_LAST, None, (str,)),
    }

    def __init__(self, note, **kwargs):
        super().__init__(**kwargs)
        self._note = note

        self.set_size_request(CARD_SIZE, CARD_SIZE)
        self.set_overflow(Gtk.Overflow.HIDDEN)
        self.set_valign(Gtk.Align.START)
        self.set_halign(Gtk.Align.START)

        frame = Gtk.Frame()
        frame.add_css_class('note-card')
        frame.set_child(self._build_content())
        self.set_child(frame)

        click = Gtk.GestureClick()
        click.connect('released', self._on_click)
        self.add_controller(click)

        self._setup_context_menu()

    def _label(self, text, css_class, **props):
        label = Gtk.Label(label=text, xalign=0, max_width_chars=22, **props)
        label.add_css_class(css_class)
        return label

    def _build_content(self):
        note = self._note
        box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=4, vexpand=True)
        box.add_css_class('note-card-content')

        box.append(self._label(
            note.title or 'Untitled Note', 'note-card-title',
            ellipsize=Pango.EllipsizeMode.END))
        box.append(Gtk.Separator())

        summary = note.preview_text
        if summary:
            box.append(self._label(
                summary, 'note-card-preview',
                yalign=0, wrap=True, wrap_mode=Pango.WrapMode.WORD_CHAR,
                lines=5, ellipsize=Pango.EllipsizeMode.END))

        # Pushes the footer to the bottom
        box.append(Gtk.Box(vexpand=True))

        footer = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=4)
        for tag in note.tags[:CARD_TAG_LIMIT]:
            footer.append(self._label(
                tag, 'tag-chip', ellipsize=Pango.EllipsizeMode.END))
        hidden = len(note.tags) - CARD_TAG_LIMIT
        if hidden > 0:
            footer.append(self._label(f'+{hidden}', 'note-card-tags'))
        footer.append(Gtk.Box(hexpand=True))
        footer.append(self._label(format_updated(note.updated_at), 'note-card-date'))
        box.append(footer)
        return box

    def _on_click(self, gesture, n_press, x, y):
        if n_press == 1:
            self.emit('activated', self._note.id)

    def _setup_context_menu(self):
        menu = Gio.Menu()
        menu.append('Open', 'card.open')
        menu.append('Delete', 'card.delete')

        action_group = Gio.SimpleActionGroup()
        for name, signal in (('open', 'activated'), ('delete', 'delete-requested')):
            action = Gio.SimpleAction.new(name, None)
            action.connect('activate', lambda a, p, s=signal: self.emit(s, self._note.id))
            action_group.add_action(action)
        self.insert_action_group('card', action_group)

        popover = Gtk.PopoverMenu(menu_model=menu, has_arrow=False)
        popover.set_parent(self)

        right_click = Gtk.GestureClick(button=Gdk.BUTTON_SECONDARY)
        right_click.connect('released', self._on_right_click, popover)
        self.add_controller(right_click)

    def _on_right_click(self, gesture, n_press, x, y, popover):
        rect = Gdk.Rectangle()
        rect.x, rect.y = int(x), int(y)
        rect.width = rect.height = 1
        popover.set_pointing_to(rect)
        popover.popup()

    @property
    def note_id(self):
        return self._note.id
