# SPDX-License-Identifier: GPL-3.0-or-later

import gi
gi.require_version('Gtk', '4.0')
gi.require_version('Adw', '1')

from gi.repository import Adw, Gtk

from blocknotes.settings import (
    AVAILABLE_AI_MODELS,
    FONT_SIZES,
    LANGUAGES,
    PRIMARY_COLORS,
    SORT_LABELS,
    THEMES,
    validate_settings,
)

_LANGUAGE_LABELS = {'en': 'English', 'zh': '中文'}


class PreferencesWindow(Adw.PreferencesDialog):

    def __init__(self, application, **kwargs):
        super().__init__(**kwargs)
        self._app = application
        self.set_title('Preferences')
        self._build_ui()

    def _combo_row(self, title, wire_key, values, labels):
        row = Adw.ComboRow(title=title)
        model = Gtk.StringList()
        for label in labels:
            model.append(label)
        row.set_model(model)

        current = self._app.settings.to_dict()[wire_key]
        if current in values:
            row.set_selected(values.index(current))
        row.connect('notify::selected', self._on_combo_changed, wire_key, values)
        return row

    def _build_ui(self):
        page = Adw.PreferencesPage(title='General', icon_name='preferences-system-symbolic')

        appearance_group = Adw.PreferencesGroup(title='Appearance')
        appearance_group.add(self._combo_row(
            'Theme', 'theme', THEMES, [t.capitalize() for t in THEMES]))
        appearance_group.add(self._combo_row(
            'Font Size', 'fontSize', FONT_SIZES, [s.capitalize() for s in FONT_SIZES]))
        appearance_group.add(self._combo_row(
            'Accent Color', 'primaryColor', PRIMARY_COLORS, PRIMARY_COLORS))
        appearance_group.add(self._combo_row(
            'Language', 'language', LANGUAGES, [_LANGUAGE_LABELS[l] for l in LANGUAGES]))
        page.add(appearance_group)

        notes_group = Adw.PreferencesGroup(title='Notes')
        sort_values = tuple(o.value for o in SORT_LABELS)
        notes_group.add(self._combo_row(
            'Sort Notes By', 'defaultSort', sort_values, list(SORT_LABELS.values())))
        page.add(notes_group)

        ai_group = Adw.PreferencesGroup(title='AI Assistant')
        model_ids = tuple(model_id for model_id, _ in AVAILABLE_AI_MODELS)
        ai_group.add(self._combo_row(
            'Model', 'aiModel', model_ids, [label for _, label in AVAILABLE_AI_MODELS]))

        key_row = Adw.PasswordEntryRow(title='OpenRouter API Key')
        key_row.set_text(self._app.settings.api_key)
        key_row.set_show_apply_button(True)
        key_row.connect('apply', self._on_api_key_applied)
        ai_group.add(key_row)
        page.add(ai_group)

        self.add(page)

    def _apply(self, raw):
        accepted, rejected = validate_settings(raw)
        if rejected:
            return
        self._app.update_settings(self._app.settings.merged(accepted))

    def _on_combo_changed(self, row, pspec, wire_key, values):
        idx = row.get_selected()
        if 0 <= idx < len(values):
            self._apply({wire_key: values[idx]})

    def _on_api_key_applied(self, row):
        self._apply({'openRouterApiKey': row.get_text().strip()})
