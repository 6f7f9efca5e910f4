"""
Normalize provider time series payloads into chart data and key metrics.

Provider maps are keyed by wall-clock timestamp strings in no guaranteed
order. Bars are parsed, made timezone-aware using the zone named in the
payload's meta data, sorted, and filtered to the requested window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..errors import EmptyIntradaySeries, EmptyWindow, MalformedSeries, MissingSeries
from ..providers.base import Bar
from ..utils.timeframes import TimeFrame, TimeFrameSpec, get_spec, parse_time_frame


logger = logging.getLogger(__name__)


@dataclass
class ChartSeries:
    labels: list[str]  # ISO 8601 with offset
    close: list[float]
    is_declining: bool

    def to_dict(self) -> dict[str, Any]:
        return {"labels": self.labels, "close": self.close, "isDeclining": self.is_declining}


@dataclass
class Metrics:
    """OHLCV of the latest bar in the window."""
    open: float
    high: float
    low: float
    close: float
    volume: int

    @classmethod
    def from_bar(cls, bar: Bar) -> Metrics:
        return cls(open=bar.open, high=bar.high, low=bar.low, close=bar.close, volume=bar.volume)

    def to_dict(self) -> dict[str, Any]:
        return {
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


def series_timezone(payload: Mapping[str, Any]) -> tzinfo:
    """
    Zone the provider's timestamps are expressed in.

    Intraday meta data carries it under '6. Time Zone', daily under
    '5. Time Zone'. Falls back to UTC.
    """
    meta = payload.get("Meta Data")
    name = None
    if isinstance(meta, Mapping):
        for key, value in meta.items():
            if str(key).endswith("Time Zone"):
                name = value
                break

    if not name:
        return timezone.utc
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone '{name}' in payload meta data. Using UTC.")
        return timezone.utc


def _parse_volume(raw: Any) -> int:
    try:
        return int(raw)
    except ValueError:
        # "1234.0" style values; truncate like an integer parse would
        return int(float(raw))


def parse_bars(series: Mapping[str, Any], tz: tzinfo, series_key: str = "") -> list[Bar]:
    """Parse every (timestamp, OHLCV) entry into a Bar, in source order."""
    bars = []
    for stamp, values in series.items():
        try:
            ts = datetime.fromisoformat(stamp)
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=tz)
            bars.append(Bar(
                ts=ts,
                open=float(values["1. open"]),
                high=float(values["2. high"]),
                low=float(values["3. low"]),
                close=float(values["4. close"]),
                volume=_parse_volume(values["5. volume"]),
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedSeries(series_key, str(stamp), str(e)) from e
    return bars


def window_start(spec: TimeFrameSpec, today: date, tz: tzinfo) -> datetime:
    """Inclusive lower bound for a historical frame: midnight of today minus the lookback."""
    if spec.lookback is None:
        raise ValueError("Intraday frames have no fixed window start")
    return datetime.combine(today - spec.lookback, time.min, tzinfo=tz)


def filter_window(
    bars: list[Bar],
    time_frame: TimeFrame | str,
    today: date | None = None,
    tz: tzinfo = timezone.utc,
) -> list[Bar]:
    """
    Restrict chronologically sorted bars to the window for time_frame.

    Intraday keeps bars sharing the calendar date of the latest bar. Other
    frames keep bars at or after window_start (no upper bound).
    """
    frame = parse_time_frame(time_frame)
    spec = get_spec(frame)

    if frame is TimeFrame.INTRADAY:
        if not bars:
            raise EmptyIntradaySeries()
        latest_date = bars[-1].ts.date()
        return [b for b in bars if b.ts.date() == latest_date]

    if today is None:
        today = datetime.now(tz).date()
    start = window_start(spec, today, tz)
    return [b for b in bars if b.ts >= start]


def is_declining(bars: list[Bar]) -> bool:
    """True when the last close is below the first; one bar or none is never declining."""
    if len(bars) < 2:
        return False
    return bars[-1].close < bars[0].close


def normalize(
    payload: Mapping[str, Any],
    time_frame: TimeFrame | str,
    today: date | None = None,
) -> tuple[ChartSeries, Metrics]:
    """
    Turn a raw provider payload into chart data and latest-bar metrics.

    Args:
        payload: Decoded provider JSON
        time_frame: Requested reporting window
        today: Reference date for historical windows (defaults to the current
            date in the payload's time zone)

    Raises:
        MissingSeries, EmptyIntradaySeries, EmptyWindow
    """
    frame = parse_time_frame(time_frame)
    spec = get_spec(frame)

    series = payload.get(spec.series_key)
    if not isinstance(series, Mapping):
        raise MissingSeries(spec.series_key)

    tz = series_timezone(payload)
    bars = parse_bars(series, tz, spec.series_key)
    bars.sort(key=lambda b: b.ts)

    filtered = filter_window(bars, frame, today=today, tz=tz)
    if not filtered:
        raise EmptyWindow(frame.value)

    logger.debug(f"Normalized {len(filtered)}/{len(bars)} bars for {frame.value}")

    chart = ChartSeries(
        labels=[b.ts.isoformat() for b in filtered],
        close=[b.close for b in filtered],
        is_declining=is_declining(filtered),
    )
    return chart, Metrics.from_bar(filtered[-1])
