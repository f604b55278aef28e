# SPDX-License-Identifier: GPL-3.0-or-later

import gi
gi.require_version('Gtk', '4.0')
from gi.repository import Gtk

from blocknotes.rich_text_toolbar import CHARACTER_FORMATS, LINE_FORMATS

GENERAL_SHORTCUTS = (
    ('New Note', '<Control>n'),
    ('Quit', '<Control>q'),
    ('Preferences', '<Control>comma'),
    ('Keyboard Shortcuts', '<Control>question'),
)

NOTE_SHORTCUTS = (
    ('Save Note', '<Control>s'),
    ('Close Note', 'Escape'),
)


def shortcut_groups():
    """(group title, [(title, accelerator), ...]) in display order."""
    return [
        ('General', list(GENERAL_SHORTCUTS)),
        ('Notes', list(NOTE_SHORTCUTS)),
        ('Text Formatting', [(title, accel) for _, _, title, accel in CHARACTER_FORMATS]),
        ('Blocks', [(title, accel) for _, _, title, accel in LINE_FORMATS]),
    ]


class ShortcutsWindow(Gtk.ShortcutsWindow):

    def __init__(self, **kwargs):
        super().__init__(**kwargs)

        section = Gtk.ShortcutsSection(visible=True, section_name='shortcuts')
        for group_title, entries in shortcut_groups():
            group = Gtk.ShortcutsGroup(title=group_title, visible=True)
            for title, accel in entries:
                group.append(Gtk.ShortcutsShortcut(
                    title=title,
                    accelerator=accel,
                    visible=True,
                ))
            section.append(group)

        self.add_section(section)
