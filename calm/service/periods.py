import calendar
from collections import namedtuple
from datetime import date, datetime, timedelta

from calm.errors import InvalidRequestError


CATEGORIES = ("MVT", "Priority", "Personal", "Recharge")
PERIODS = ("day", "week", "month", "year")
DEFAULT_PERIOD = "week"

DAY_FIRST_HOUR = 6
DAY_LAST_HOUR = 22

WEEKDAY_LABELS = ["Пон", "Вт", "Ср", "Чет", "Пет", "Съб", "Нед"]
MONTH_LABELS = [
    "Яну", "Фев", "Мар", "Апр", "Май", "Юни",
    "Юли", "Авг", "Сеп", "Окт", "Ное", "Дек",
]

DateRange = namedtuple("DateRange", ["period", "start", "end", "labels"])


def resolve_period(period):
    period = (period or "").strip().lower()
    return period if period in PERIODS else DEFAULT_PERIOD


def parse_date(value):
    try:
        return date.fromisoformat(value.strip()[:10])
    except (AttributeError, ValueError):
        raise InvalidRequestError(f"Invalid date: {value!r}, expected YYYY-MM-DD")


def calculate_date_range(date_param=None, period=None, today=None):
    """Turn a reference date and a period name into an inclusive range.

    Weeks run Monday to Sunday. Months are cut into 7-day windows starting on
    the 1st, so the label count is ceil(days_in_month / 7). Unknown periods
    are treated as "week".
    """
    if date_param:
        base = parse_date(date_param)
    else:
        base = today or datetime.utcnow().date()
    period = resolve_period(period)

    if period == "day":
        labels = [f"{hour:02d}:00" for hour in range(DAY_FIRST_HOUR, DAY_LAST_HOUR)]
        return DateRange(period, base, base, labels)

    if period == "month":
        days_in_month = calendar.monthrange(base.year, base.month)[1]
        start = base.replace(day=1)
        end = base.replace(day=days_in_month)
        labels = [f"С{week}" for week in range(1, (days_in_month + 6) // 7 + 1)]
        return DateRange(period, start, end, labels)

    if period == "year":
        return DateRange(
            period, date(base.year, 1, 1), date(base.year, 12, 31), list(MONTH_LABELS)
        )

    start = base - timedelta(days=base.weekday())
    return DateRange(period, start, start + timedelta(days=6), list(WEEKDAY_LABELS))


def _empty_bucket(label, **tags):
    bucket = {"label": label}
    bucket.update(tags)
    for category in CATEGORIES:
        bucket[category] = 0
    return bucket


def build_buckets(date_range):
    """Zero-filled chart buckets shaped after the range's period."""
    period = date_range.period
    start = date_range.start

    if period == "day":
        return [
            _empty_bucket(label, hour=DAY_FIRST_HOUR + index, date=start.isoformat())
            for index, label in enumerate(date_range.labels)
        ]

    if period == "month":
        buckets = []
        for index, label in enumerate(date_range.labels):
            week_start = start + timedelta(days=index * 7)
            week_end = week_start + timedelta(days=6)
            buckets.append(
                _empty_bucket(
                    label,
                    startDate=week_start.isoformat(),
                    endDate=week_end.isoformat(),
                )
            )
        return buckets

    if period == "year":
        return [
            _empty_bucket(label, month=index, year=start.year)
            for index, label in enumerate(date_range.labels)
        ]

    return [
        _empty_bucket(label, date=(start + timedelta(days=index)).isoformat())
        for index, label in enumerate(date_range.labels)
    ]
