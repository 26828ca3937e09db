from __future__ import annotations

from datetime import date, datetime, timezone

from rewards_bot.utils.dt import CivilClock, aware_utc, naive_utc


def test_today_follows_kyiv_not_utc():
    clock = CivilClock("Europe/Kyiv")
    # 23:30 UTC is already 02:30 next day in Kyiv (summer, UTC+3)
    late_utc = datetime(2024, 6, 10, 23, 30, tzinfo=timezone.utc)
    assert clock.today_string(late_utc) == "2024-06-11"
    assert clock.yesterday_string(late_utc) == "2024-06-10"

    assert clock.today_string(datetime(2024, 6, 10, 20, 59, tzinfo=timezone.utc)) == "2024-06-10"
    assert clock.today_string(datetime(2024, 6, 10, 21, 0, tzinfo=timezone.utc)) == "2024-06-11"


def test_next_midnight_in_summer_and_winter():
    clock = CivilClock("Europe/Kyiv")
    summer = datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc)
    winter = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

    assert clock.next_midnight(summer) == datetime(2024, 6, 10, 21, 0, tzinfo=timezone.utc)
    assert clock.next_midnight(winter) == datetime(2024, 1, 15, 22, 0, tzinfo=timezone.utc)


def test_spring_forward_day_is_23_hours():
    clock = CivilClock("Europe/Kyiv")
    start = clock.midnight_of(date(2024, 3, 31))
    end = clock.midnight_of(date(2024, 4, 1))

    assert start == datetime(2024, 3, 30, 22, 0, tzinfo=timezone.utc)
    assert end == datetime(2024, 3, 31, 21, 0, tzinfo=timezone.utc)
    assert (end - start).total_seconds() == 23 * 3600

    noon = datetime(2024, 3, 31, 10, 0, tzinfo=timezone.utc)
    assert clock.next_midnight(noon) == end


def test_fall_back_day_is_25_hours():
    clock = CivilClock("Europe/Kyiv")
    start = clock.midnight_of(date(2024, 10, 27))
    end = clock.midnight_of(date(2024, 10, 28))

    assert start == datetime(2024, 10, 26, 21, 0, tzinfo=timezone.utc)
    assert end == datetime(2024, 10, 27, 22, 0, tzinfo=timezone.utc)
    assert (end - start).total_seconds() == 25 * 3600


def test_now_fn_is_used_and_normalized_to_utc():
    fixed = datetime(2024, 6, 10, 9, 0)  # naive, treated as UTC
    clock = CivilClock("Europe/Kyiv", now_fn=lambda: fixed)

    assert clock.now() == datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc)
    assert clock.today_string() == "2024-06-10"


def test_naive_and_aware_helpers():
    aware = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)
    naive = naive_utc(aware)

    assert naive.tzinfo is None
    assert naive == datetime(2024, 6, 10, 12, 0)
    assert aware_utc(naive) == aware
    assert naive_utc(naive) is naive
