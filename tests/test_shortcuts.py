# SPDX-License-Identifier: GPL-3.0-or-later

from blocknotes.rich_text_serializer import HEADER_TAGS, TAG_NAMES
from blocknotes.rich_text_toolbar import CHARACTER_FORMATS, LINE_FORMATS
from blocknotes.shortcuts import shortcut_groups


def test_character_formats_are_buffer_tags():
    assert {name for name, _, _, _ in CHARACTER_FORMATS} == TAG_NAMES


def test_line_formats_are_headers_or_bullets():
    for name, _, _, _ in LINE_FORMATS:
        assert name in HEADER_TAGS or name == 'bullet'


def test_accelerators_are_unique():
    accels = [accel for _, entries in shortcut_groups() for _, accel in entries]
    assert len(accels) == len(set(accels))


def test_groups_list_every_format():
    groups = dict(shortcut_groups())
    assert [t for t, _ in groups['Text Formatting']] == [
        'Bold', 'Italic', 'Underline', 'Strikethrough']
    assert ('Save Note', '<Control>s') in groups['Notes']
