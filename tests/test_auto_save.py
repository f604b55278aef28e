# SPDX-License-Identifier: GPL-3.0-or-later

from blocknotes.auto_save import Debounce

from conftest import spin


def test_trigger_debounces():
    calls = []
    debounce = Debounce(lambda: calls.append(1), delay_ms=30)
    for _ in range(5):
        debounce.trigger()
    assert debounce.pending
    spin(100)
    assert calls == [1]
    assert not debounce.pending


def test_cancel():
    calls = []
    debounce = Debounce(lambda: calls.append(1), delay_ms=30)
    debounce.trigger()
    debounce.cancel()
    spin(80)
    assert calls == []


def test_flush_runs_immediately():
    debounce = Debounce(lambda: 'done', delay_ms=30)
    debounce.trigger()
    assert debounce.flush() == 'done'
    assert not debounce.pending


def test_retrigger_after_elapsed():
    calls = []
    debounce = Debounce(lambda: calls.append(1), delay_ms=20)
    debounce.trigger()
    spin(60)
    debounce.trigger()
    spin(60)
    assert calls == [1, 1]
