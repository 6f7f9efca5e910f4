from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from dateutil.relativedelta import relativedelta

from ..errors import InvalidTimeFrame


INTRADAY_SERIES_KEY = "Time Series (1min)"
DAILY_SERIES_KEY = "Time Series (Daily)"


class TimeFrame(str, Enum):
    """Reporting windows a client can ask for."""
    INTRADAY = "daily"
    WEEK = "weekly"
    MONTH = "monthly"
    YEAR = "yearly"
    FIVE_YEAR = "5year"


@dataclass(frozen=True)
class TimeFrameSpec:
    """Upstream query shape and post-fetch lookback for one time frame."""
    function: str
    interval: str | None
    outputsize: str  # compact | full
    series_key: str
    lookback: relativedelta | None  # None = same calendar date as the latest bar


# Historical frames pull full history; the daily endpoint has no sparser ranges.
TIME_FRAME_SPECS: dict[TimeFrame, TimeFrameSpec] = {
    TimeFrame.INTRADAY: TimeFrameSpec(
        "TIME_SERIES_INTRADAY", "1min", "compact", INTRADAY_SERIES_KEY, None
    ),
    TimeFrame.WEEK: TimeFrameSpec(
        "TIME_SERIES_DAILY", None, "full", DAILY_SERIES_KEY, relativedelta(days=7)
    ),
    TimeFrame.MONTH: TimeFrameSpec(
        "TIME_SERIES_DAILY", None, "full", DAILY_SERIES_KEY, relativedelta(months=1)
    ),
    TimeFrame.YEAR: TimeFrameSpec(
        "TIME_SERIES_DAILY", None, "full", DAILY_SERIES_KEY, relativedelta(years=1)
    ),
    TimeFrame.FIVE_YEAR: TimeFrameSpec(
        "TIME_SERIES_DAILY", None, "full", DAILY_SERIES_KEY, relativedelta(years=5)
    ),
}


def parse_time_frame(value: TimeFrame | str) -> TimeFrame:
    """Convert 'daily'/'weekly'/... into a TimeFrame, raising InvalidTimeFrame otherwise."""
    if isinstance(value, TimeFrame):
        return value
    try:
        return TimeFrame(str(value).strip().lower())
    except ValueError:
        raise InvalidTimeFrame(value) from None


def get_spec(value: TimeFrame | str) -> TimeFrameSpec:
    return TIME_FRAME_SPECS[parse_time_frame(value)]
