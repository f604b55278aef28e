# SPDX-License-Identifier: GPL-3.0-or-later

APP_ID = 'io.github.blocknotes.BlockNotes'
APP_NAME = 'BlockNotes'
APP_VERSION = '0.1.0'

AUTOSAVE_DELAY_MS = 2000
EDITOR_MOUNT_DELAY_MS = 50
SEARCH_DELAY_MS = 200

MAX_TAGS = 10
SUMMARY_MAX_CHARS = 120

EXPORT_VERSION = 2
DOCUMENT_FORMAT_VERSION = '2.28.2'
