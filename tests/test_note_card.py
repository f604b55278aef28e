# SPDX-License-Identifier: GPL-3.0-or-later

from datetime import datetime

from blocknotes.note_card import format_updated


def _ms(dt):
    return int(dt.timestamp() * 1000)


NOW = datetime(2026, 10, 18, 15, 30)


def test_today_shows_clock_time():
    assert format_updated(_ms(datetime(2026, 10, 18, 9, 5)), now=NOW) == '09:05'


def test_this_year_shows_month_and_day():
    assert format_updated(_ms(datetime(2026, 3, 2, 12, 0)), now=NOW) == 'Mar 02'


def test_older_shows_year():
    assert format_updated(_ms(datetime(2024, 12, 31, 23, 0)), now=NOW) == 'Dec 31, 2024'
