# SPDX-License-Identifier: GPL-3.0-or-later
"""Filesystem locations for the database and logs."""

import os
from pathlib import Path

from gi.repository import GLib

DATA_DIR_ENV = 'BLOCKNOTES_DATA_DIR'


def data_dir() -> Path:
    override = os.getenv(DATA_DIR_ENV)
    if override:
        path = Path(override)
    else:
        path = Path(GLib.get_user_data_dir()) / 'blocknotes'
    path.mkdir(parents=True, exist_ok=True)
    return path


def database_path() -> Path:
    return data_dir() / 'notes.db'


def log_dir() -> Path:
    path = data_dir() / 'logs'
    path.mkdir(parents=True, exist_ok=True)
    return path
