# SPDX-License-Identifier: GPL-3.0-or-later

import gi
gi.require_version('Gtk', '4.0')

from gi.repository import GObject, Gtk

# (buffer tag, icon, title, accelerator)
CHARACTER_FORMATS = (
    ('bold', 'format-text-bold-symbolic', 'Bold', '<Control>b'),
    ('italic', 'format-text-italic-symbolic', 'Italic', '<Control>i'),
    ('underline', 'format-text-underline-symbolic', 'Underline', '<Control>u'),
    ('strikethrough', 'format-text-strikethrough-symbolic', 'Strikethrough', '<Control>d'),
)

# (line tag, label, title, accelerator)
LINE_FORMATS = (
    ('h1', 'H1', 'Heading 1', '<Control>1'),
    ('h2', 'H2', 'Heading 2', '<Control>2'),
    ('h3', 'H3', 'Heading 3', '<Control>3'),
    ('bullet', None, 'Bullet List', '<Control><Shift>8'),
)


class RichTextToolbar(Gtk.Box):
    """Toggle buttons for the character and line formats a note buffer knows."""

    __gsignals__ = {
        'format-toggled': (GObject.SignalFlags.RUN_LAST, None, (str, bool)),
    }

    def __init__(self, **kwargs):
        super().__init__(
            orientation=Gtk.Orientation.HORIZONTAL,
            spacing=4,
            **kwargs,
        )
        self.add_css_class('rich-text-toolbar')

        self._buttons = {}
        self._updating = False

        for name, icon, title, accel in CHARACTER_FORMATS:
            self._add_toggle(name, f'{title} ({accel})', icon_name=icon)

        self.append(Gtk.Separator(orientation=Gtk.Orientation.VERTICAL))

        for name, label, title, accel in LINE_FORMATS:
            if label:
                self._add_toggle(name, title, label=label)
            else:
                self._add_toggle(name, title, icon_name='view-list-symbolic')

    def _add_toggle(self, name, tooltip, **props):
        btn = Gtk.ToggleButton(tooltip_text=tooltip, **props)
        btn.connect('toggled', self._on_toggled, name)
        self.append(btn)
        self._buttons[name] = btn

    def _on_toggled(self, button, format_name):
        if not self._updating:
            self.emit('format-toggled', format_name, button.get_active())

    def update_state(self, active_formats):
        """Reflect the formats at the cursor without re-emitting them."""
        self._updating = True
        for name, btn in self._buttons.items():
            btn.set_active(name in active_formats)
        self._updating = False
