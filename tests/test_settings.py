# SPDX-License-Identifier: GPL-3.0-or-later

from blocknotes.note import Note
from blocknotes.settings import (
    AI_MODEL_IDS,
    SORT_LABELS,
    AppSettings,
    SortOption,
    sort_notes,
    validate_settings,
)


def test_validate_accepts_known_values():
    accepted, rejected = validate_settings({
        'theme': 'dark',
        'fontSize': 'large',
        'defaultSort': 'titleAsc',
        'language': 'zh',
        'aiModel': AI_MODEL_IDS[1],
        'openRouterApiKey': 'sk-123',
    })
    assert rejected == []
    assert accepted['theme'] == 'dark'
    assert accepted['openRouterApiKey'] == 'sk-123'


def test_validate_rejects_invalid_and_unknown_fields():
    accepted, rejected = validate_settings({
        'theme': 'neon',
        'fontSize': 12,
        'language': 'en',
        'sidebar': True,
        'key': 'appSettings',
    })
    assert accepted == {'language': 'en'}
    assert sorted(rejected) == ['fontSize', 'sidebar', 'theme']


def test_validate_non_mapping():
    assert validate_settings(['theme']) == ({}, [])


def test_merged_returns_new_snapshot():
    base = AppSettings()
    changed = base.merged({'theme': 'dark', 'defaultSort': 'createdAtAsc'})
    assert base.theme == 'light'
    assert changed.theme == 'dark'
    assert changed.default_sort == 'createdAtAsc'


def test_from_stored_ignores_bad_values():
    settings = AppSettings.from_stored({'theme': 'dark', 'fontSize': 'huge'})
    assert settings.theme == 'dark'
    assert settings.font_size == 'medium'
    assert AppSettings.from_stored(None) == AppSettings()


def test_to_dict_uses_wire_names():
    wire = AppSettings().to_dict()
    assert set(wire) == {'theme', 'fontSize', 'defaultSort', 'language',
                         'aiModel', 'primaryColor', 'openRouterApiKey'}
    assert AppSettings.from_stored(wire) == AppSettings()


def test_sort_notes():
    notes = [
        Note(id='1', title='banana', created_at=1, updated_at=30),
        Note(id='2', title='Apple', created_at=2, updated_at=10),
        Note(id='3', title='cherry', created_at=3, updated_at=20),
    ]
    ids = lambda option: [n.id for n in sort_notes(notes, option)]
    assert ids(SortOption.UPDATED_DESC) == ['1', '3', '2']
    assert ids('updatedAtAsc') == ['2', '3', '1']
    assert ids('createdAtDesc') == ['3', '2', '1']
    assert ids('createdAtAsc') == ['1', '2', '3']
    assert ids('titleAsc') == ['2', '1', '3']
    assert ids('titleDesc') == ['3', '1', '2']
    assert ids('bogus') == ['1', '3', '2']


def test_every_sort_option_has_a_label():
    assert set(SORT_LABELS) == set(SortOption)
