# SPDX-License-Identifier: GPL-3.0-or-later

from gi.repository import GLib


class Debounce:
    """Runs a callback once, delay_ms after the last trigger().

    Used for the editor autosave and the search entry. The callback runs on
    the GLib main loop; flush() runs it synchronously and returns its result.
    """

    def __init__(self, callback, delay_ms):
        self._callback = callback
        self._delay_ms = delay_ms
        self._timeout_id = None

    @property
    def pending(self) -> bool:
        return self._timeout_id is not None

    def trigger(self):
        self.cancel()
        self._timeout_id = GLib.timeout_add(self._delay_ms, self._on_elapsed)

    def cancel(self):
        if self._timeout_id is not None:
            GLib.source_remove(self._timeout_id)
            self._timeout_id = None

    def flush(self):
        self.cancel()
        return self._callback()

    def _on_elapsed(self):
        self._timeout_id = None
        self._callback()
        return GLib.SOURCE_REMOVE
