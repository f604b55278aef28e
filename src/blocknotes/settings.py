# SPDX-License-Identifier: GPL-3.0-or-later
"""User preferences snapshot and field-level validation of imported values."""

import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum

log = logging.getLogger(__name__)


class SortOption(str, Enum):
    CREATED_DESC = 'createdAtDesc'
    CREATED_ASC = 'createdAtAsc'
    UPDATED_DESC = 'updatedAtDesc'
    UPDATED_ASC = 'updatedAtAsc'
    TITLE_ASC = 'titleAsc'
    TITLE_DESC = 'titleDesc'

SORT_LABELS = {
    SortOption.UPDATED_DESC: 'Last edited, newest first',
    SortOption.UPDATED_ASC: 'Last edited, oldest first',
    SortOption.CREATED_DESC: 'Created, newest first',
    SortOption.CREATED_ASC: 'Created, oldest first',
    SortOption.TITLE_ASC: 'Title, A to Z',
    SortOption.TITLE_DESC: 'Title, Z to A',
}


_SORT_KEYS = {
    SortOption.CREATED_DESC: (lambda n: n.created_at, True),
    SortOption.CREATED_ASC: (lambda n: n.created_at, False),
    SortOption.UPDATED_DESC: (lambda n: n.updated_at, True),
    SortOption.UPDATED_ASC: (lambda n: n.updated_at, False),
    SortOption.TITLE_ASC: (lambda n: n.title.casefold(), False),
    SortOption.TITLE_DESC: (lambda n: n.title.casefold(), True),
}


def sort_notes(notes, option) -> list:
    """Order notes for display; unknown options fall back to newest edit first."""
    try:
        key, reverse = _SORT_KEYS[SortOption(option)]
    except ValueError:
        key, reverse = _SORT_KEYS[SortOption.UPDATED_DESC]
    return sorted(notes, key=key, reverse=reverse)


THEMES = ('light', 'dark')
FONT_SIZES = ('small', 'medium', 'large')
LANGUAGES = ('en', 'zh')

AVAILABLE_AI_MODELS = (
    ('deepseek/deepseek-r1-0528:free', 'DeepSeek R1 0528 (Free)'),
    ('mistralai/mistral-7b-instruct-v0.2', 'Mistral 7B Instruct v0.2'),
    ('openai/gpt-3.5-turbo', 'OpenAI GPT-3.5 Turbo'),
    ('google/gemini-pro', 'Google Gemini Pro'),
    ('anthropic/claude-3-haiku-20240307', 'Anthropic Claude 3 Haiku'),
    ('meta-llama/llama-3-8b-instruct', 'Meta Llama 3 8B Instruct'),
)
AI_MODEL_IDS = tuple(model_id for model_id, _ in AVAILABLE_AI_MODELS)

PRIMARY_COLORS = ('#4f46e5', '#0ea5e9', '#10b981', '#f43f5e', '#f59e0b', '#8b5cf6')

# wire key -> (attribute, allowed values or None for free text)
_FIELDS = {
    'theme': ('theme', THEMES),
    'fontSize': ('font_size', FONT_SIZES),
    'defaultSort': ('default_sort', tuple(o.value for o in SortOption)),
    'language': ('language', LANGUAGES),
    'aiModel': ('ai_model', AI_MODEL_IDS),
    'primaryColor': ('primary_color', PRIMARY_COLORS),
    'openRouterApiKey': ('api_key', None),
}


@dataclass(frozen=True)
class AppSettings:
    theme: str = 'light'
    font_size: str = 'medium'
    default_sort: str = SortOption.UPDATED_DESC.value
    language: str = 'en'
    ai_model: str = AI_MODEL_IDS[0]
    primary_color: str = PRIMARY_COLORS[0]
    api_key: str = ''

    def to_dict(self) -> dict:
        values = asdict(self)
        return {wire: values[attr] for wire, (attr, _) in _FIELDS.items()}

    def merged(self, accepted) -> 'AppSettings':
        """Return a copy with already-validated wire fields applied."""
        changes = {_FIELDS[wire][0]: value for wire, value in accepted.items()}
        return replace(self, **changes)

    @classmethod
    def from_stored(cls, raw) -> 'AppSettings':
        accepted, _ = validate_settings(raw or {})
        return cls().merged(accepted)


def validate_settings(raw):
    """Split raw settings into accepted wire fields and rejected field names.

    Enumerated fields only accept their listed values; unknown fields are
    rejected too. Nothing is applied here.
    """
    accepted = {}
    rejected = []
    if not isinstance(raw, dict):
        log.warning('Settings payload is not an object; ignoring it')
        return accepted, rejected
    for key, value in raw.items():
        field = _FIELDS.get(key)
        if field is None:
            if key != 'key':
                rejected.append(key)
            continue
        _, allowed = field
        if allowed is None:
            ok = isinstance(value, str)
        else:
            ok = value in allowed
        if ok:
            accepted[key] = value
        else:
            rejected.append(key)
    if rejected:
        log.warning('Dropped invalid settings fields: %s', ', '.join(rejected))
    return accepted, rejected
