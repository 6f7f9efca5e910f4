"""Tests for time series normalization and window filtering."""

import random
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from stocksight.errors import EmptyIntradaySeries, EmptyWindow, MalformedSeries, MissingSeries
from stocksight.providers.base import Bar
from stocksight.series.normalizer import (
    filter_window,
    is_declining,
    normalize,
    parse_bars,
    series_timezone,
    window_start,
)
from stocksight.utils.timeframes import TimeFrame, get_spec


def ohlcv(close, open_=None, high=None, low=None, volume=100):
    open_ = close if open_ is None else open_
    return {
        "1. open": str(open_),
        "2. high": str(high if high is not None else max(open_, close) + 1),
        "3. low": str(low if low is not None else min(open_, close) - 1),
        "4. close": str(close),
        "5. volume": str(volume),
    }


def daily_payload(closes_by_date, tz_name=None):
    payload = {"Time Series (Daily)": {d: ohlcv(c) for d, c in closes_by_date.items()}}
    if tz_name:
        payload["Meta Data"] = {"1. Information": "Daily Prices", "5. Time Zone": tz_name}
    return payload


def make_bar(ts, close):
    return Bar(ts=ts, open=close, high=close, low=close, close=close, volume=1)


class TestParseBars:
    """Tests for parse_bars."""

    def test_parses_numeric_fields(self):
        series = {
            "2024-01-02": {
                "1. open": "10.5", "2. high": "12.25", "3. low": "9.125",
                "4. close": "11.75", "5. volume": "123456",
            }
        }
        bars = parse_bars(series, timezone.utc)

        assert len(bars) == 1
        bar = bars[0]
        assert bar.ts == datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert bar.open == 10.5
        assert bar.high == 12.25
        assert bar.low == 9.125
        assert bar.close == 11.75
        assert bar.volume == 123456
        assert isinstance(bar.volume, int)

    def test_intraday_timestamp_gets_zone(self):
        tz = ZoneInfo("US/Eastern")
        bars = parse_bars({"2024-01-10 09:31:00": ohlcv(5)}, tz)
        assert bars[0].ts == datetime(2024, 1, 10, 9, 31, tzinfo=tz)

    def test_decimal_volume_truncated(self):
        bars = parse_bars({"2024-01-02": ohlcv(5, volume="1500.0")}, timezone.utc)
        assert bars[0].volume == 1500

    def test_missing_field_raises_malformed(self):
        series = {"2024-01-02": {"1. open": "1", "2. high": "2", "3. low": "0.5", "4. close": "1"}}
        with pytest.raises(MalformedSeries) as exc_info:
            parse_bars(series, timezone.utc, "Time Series (Daily)")
        assert exc_info.value.timestamp == "2024-01-02"

    def test_bad_timestamp_raises_malformed(self):
        with pytest.raises(MalformedSeries):
            parse_bars({"yesterday": ohlcv(1)}, timezone.utc)


class TestSeriesTimezone:
    """Tests for series_timezone."""

    def test_daily_meta_zone(self):
        payload = {"Meta Data": {"5. Time Zone": "US/Eastern"}}
        assert series_timezone(payload) == ZoneInfo("US/Eastern")

    def test_intraday_meta_zone(self):
        payload = {"Meta Data": {"4. Interval": "1min", "6. Time Zone": "US/Eastern"}}
        assert series_timezone(payload) == ZoneInfo("US/Eastern")

    def test_missing_meta_defaults_to_utc(self):
        assert series_timezone({}) is timezone.utc

    def test_unknown_zone_defaults_to_utc(self):
        payload = {"Meta Data": {"5. Time Zone": "Mars/Olympus_Mons"}}
        assert series_timezone(payload) is timezone.utc


class TestWindow:
    """Tests for window_start and filter_window."""

    def test_weekly_start(self):
        start = window_start(get_spec(TimeFrame.WEEK), date(2024, 1, 10), timezone.utc)
        assert start == datetime(2024, 1, 3, tzinfo=timezone.utc)

    def test_monthly_start_clamps_to_month_end(self):
        start = window_start(get_spec(TimeFrame.MONTH), date(2024, 3, 31), timezone.utc)
        assert start == datetime(2024, 2, 29, tzinfo=timezone.utc)

    def test_yearly_start(self):
        start = window_start(get_spec(TimeFrame.YEAR), date(2024, 6, 15), timezone.utc)
        assert start == datetime(2023, 6, 15, tzinfo=timezone.utc)

    def test_five_year_start(self):
        start = window_start(get_spec(TimeFrame.FIVE_YEAR), date(2024, 6, 15), timezone.utc)
        assert start == datetime(2019, 6, 15, tzinfo=timezone.utc)

    def test_intraday_has_no_fixed_start(self):
        with pytest.raises(ValueError):
            window_start(get_spec(TimeFrame.INTRADAY), date(2024, 6, 15), timezone.utc)

    def test_lower_bound_is_inclusive(self):
        bars = [
            make_bar(datetime(2024, 1, 2, tzinfo=timezone.utc), 1.0),
            make_bar(datetime(2024, 1, 3, tzinfo=timezone.utc), 2.0),
            make_bar(datetime(2024, 1, 20, tzinfo=timezone.utc), 3.0),
        ]
        kept = filter_window(bars, "weekly", today=date(2024, 1, 10))
        # No upper bound: bars after "today" stay in
        assert [b.close for b in kept] == [2.0, 3.0]

    @pytest.mark.parametrize(
        "frame,today",
        [
            ("weekly", date(2023, 12, 20)),
            ("monthly", date(2023, 12, 20)),
            ("yearly", date(2023, 12, 20)),
            ("5year", date(2023, 12, 20)),
        ],
    )
    def test_no_bar_before_lower_bound(self, frame, today):
        first = datetime(2018, 1, 1, tzinfo=timezone.utc)
        bars = [make_bar(first + timedelta(days=3 * i), float(i)) for i in range(800)]
        start = window_start(get_spec(frame), today, timezone.utc)

        kept = filter_window(bars, frame, today=today)

        assert kept
        assert all(b.ts >= start for b in kept)
        assert len(kept) == sum(1 for b in bars if b.ts >= start)

    def test_intraday_keeps_latest_calendar_date(self):
        tz = ZoneInfo("US/Eastern")
        bars = [
            make_bar(datetime(2024, 1, 9, 15, 59, tzinfo=tz), 1.0),
            make_bar(datetime(2024, 1, 10, 9, 30, tzinfo=tz), 2.0),
            make_bar(datetime(2024, 1, 10, 16, 0, tzinfo=tz), 3.0),
        ]
        kept = filter_window(bars, "daily", tz=tz)
        assert [b.close for b in kept] == [2.0, 3.0]

    def test_intraday_ignores_wall_clock_today(self):
        """The latest bar's date decides, even when it is long past."""
        bars = [make_bar(datetime(2001, 5, 4, 10, 0, tzinfo=timezone.utc), 1.0)]
        kept = filter_window(bars, "daily", today=date(2024, 1, 1))
        assert len(kept) == 1

    def test_intraday_empty_raises(self):
        with pytest.raises(EmptyIntradaySeries):
            filter_window([], "daily")


class TestIsDeclining:
    """Tests for is_declining."""

    def test_empty_and_single_bar_not_declining(self):
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert is_declining([]) is False
        assert is_declining([make_bar(ts, 5.0)]) is False

    def test_last_below_first(self):
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
        bars = [make_bar(ts, 10.0), make_bar(ts + timedelta(days=1), 20.0), make_bar(ts + timedelta(days=2), 9.0)]
        assert is_declining(bars) is True

    def test_equal_close_not_declining(self):
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
        bars = [make_bar(ts, 10.0), make_bar(ts + timedelta(days=1), 10.0)]
        assert is_declining(bars) is False


class TestNormalize:
    """Tests for normalize."""

    def test_weekly_scenario(self):
        """2024-01-02 falls before the 2024-01-03 bound; a single bar is not declining."""
        payload = {
            "Time Series (Daily)": {
                "2024-01-02": {"1. open": "10", "2. high": "12", "3. low": "9", "4. close": "11", "5. volume": "100"},
                "2024-01-10": {"1. open": "10", "2. high": "10.5", "3. low": "8.5", "4. close": "9", "5. volume": "250"},
            }
        }

        chart, metrics = normalize(payload, "weekly", today=date(2024, 1, 10))

        assert chart.labels == ["2024-01-10T00:00:00+00:00"]
        assert chart.close == [9.0]
        assert chart.is_declining is False
        assert metrics.open == 10.0
        assert metrics.high == 10.5
        assert metrics.low == 8.5
        assert metrics.close == 9.0
        assert metrics.volume == 250

    def test_sorts_unordered_input(self):
        closes = {f"2024-02-{day:02d}": float(day) for day in range(1, 29)}
        items = list(closes.items())
        random.Random(7).shuffle(items)
        payload = daily_payload(dict(items))

        chart, metrics = normalize(payload, "monthly", today=date(2024, 2, 28))

        assert chart.labels == sorted(chart.labels)
        assert chart.close == [float(day) for day in range(1, 29)]
        assert metrics.close == 28.0
        assert chart.is_declining is False

    def test_declining_series(self):
        payload = daily_payload({"2024-01-08": 20.0, "2024-01-09": 25.0, "2024-01-10": 15.0})
        chart, _ = normalize(payload, "weekly", today=date(2024, 1, 10))
        assert chart.is_declining is True

    def test_intraday_filters_to_latest_date_with_offset(self):
        payload = {
            "Meta Data": {"4. Interval": "1min", "6. Time Zone": "US/Eastern"},
            "Time Series (1min)": {
                "2024-01-10 16:00:00": ohlcv(101.0, volume=500),
                "2024-01-09 15:59:00": ohlcv(99.0),
                "2024-01-10 09:30:00": ohlcv(100.0),
            },
        }

        chart, metrics = normalize(payload, TimeFrame.INTRADAY)

        assert chart.labels == ["2024-01-10T09:30:00-05:00", "2024-01-10T16:00:00-05:00"]
        assert chart.close == [100.0, 101.0]
        assert chart.is_declining is False
        assert metrics.close == 101.0
        assert metrics.volume == 500

    def test_default_today_uses_current_date(self):
        today = datetime.now(timezone.utc).date()
        payload = daily_payload({today.isoformat(): 5.0, "1990-01-01": 1.0})
        chart, _ = normalize(payload, "weekly")
        assert chart.close == [5.0]

    def test_missing_series_raises(self):
        with pytest.raises(MissingSeries):
            normalize({"Meta Data": {}}, "weekly")

    def test_intraday_payload_for_daily_frame_is_missing(self):
        """The series key follows the requested frame."""
        payload = {"Time Series (1min)": {"2024-01-10 09:30:00": ohlcv(1.0)}}
        with pytest.raises(MissingSeries):
            normalize(payload, "yearly")

    def test_empty_daily_series_raises_empty_window(self):
        with pytest.raises(EmptyWindow):
            normalize({"Time Series (Daily)": {}}, "weekly", today=date(2024, 1, 10))

    def test_empty_intraday_series_raises(self):
        with pytest.raises(EmptyIntradaySeries):
            normalize({"Time Series (1min)": {}}, "daily")

    def test_all_bars_too_old_raises_empty_window(self):
        payload = daily_payload({"2020-01-02": 1.0, "2020-01-03": 2.0})
        with pytest.raises(EmptyWindow):
            normalize(payload, "monthly", today=date(2024, 1, 10))

    def test_to_dict_shapes(self):
        payload = daily_payload({"2024-01-09": 10.0, "2024-01-10": 11.0})
        chart, metrics = normalize(payload, "weekly", today=date(2024, 1, 10))

        assert chart.to_dict() == {
            "labels": ["2024-01-09T00:00:00+00:00", "2024-01-10T00:00:00+00:00"],
            "close": [10.0, 11.0],
            "isDeclining": False,
        }
        assert set(metrics.to_dict()) == {"open", "high", "low", "close", "volume"}
