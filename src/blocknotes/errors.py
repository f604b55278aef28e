# SPDX-License-Identifier: GPL-3.0-or-later


class BlockNotesError(Exception):
    """Base class for errors surfaced to the user."""


class NoteNotFoundError(BlockNotesError):

    def __init__(self, note_id):
        super().__init__(f'Note {note_id} not found')
        self.note_id = note_id


class StorageError(BlockNotesError):
    """A persistence call failed; nothing was written."""


class InvalidFormatError(BlockNotesError):
    """Import payload is not a recognised export format."""


class NoteValidationError(BlockNotesError):

    def __init__(self, index, reason):
        super().__init__(f'Invalid note at index {index}: {reason}')
        self.index = index
        self.reason = reason


class EditorConstructionError(BlockNotesError):
    pass


class AiServiceError(BlockNotesError):
    pass
