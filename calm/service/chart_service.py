import logging
import math
from datetime import date, datetime

from calm.errors import InvalidRequestError, UpstreamError
from calm.service.periods import (
    CATEGORIES,
    build_buckets,
    calculate_date_range,
)


logger = logging.getLogger(__name__)

COMPLETED_STATUS = "Completed"


def _select_name(props, *names):
    for name in names:
        value = ((props.get(name) or {}).get("select") or {}).get("name")
        if value:
            return value
    return None


def _minutes_of_day(value):
    parts = value.strip().split(":")
    minutes = parts[1] if len(parts) > 1 else ""
    return int(parts[0]) * 60 + int(minutes or 0)


def _is_finite_number(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _task_entry(task, include_all):
    """Pull (date, category, start_minute, end_minute) out of a Notion page.

    Returns None for pages that cannot be charted.
    """
    props = task.get("properties") or {}
    task_date = ((props.get("Date") or {}).get("date") or {}).get("start")
    category = _select_name(props, "Category")
    start_time = _select_name(props, "Start Time", "Start")
    end_time = _select_name(props, "End Time", "End")

    if not task_date or not category or not start_time or not end_time:
        return None
    if category not in CATEGORIES:
        return None
    if not include_all and _select_name(props, "Status") != COMPLETED_STATUS:
        return None
    try:
        start_minute = _minutes_of_day(start_time)
        end_minute = _minutes_of_day(end_time)
        date.fromisoformat(task_date[:10])
    except ValueError:
        return None
    if end_minute <= start_minute:
        return None
    return task_date[:10], category, start_minute, end_minute


def _bucket_index(buckets, period, task_date):
    if period == "week":
        for index, bucket in enumerate(buckets):
            if bucket["date"] == task_date:
                return index
    elif period == "month":
        for index, bucket in enumerate(buckets):
            if bucket["startDate"] <= task_date <= bucket["endDate"]:
                return index
    elif period == "year":
        year, month = int(task_date[:4]), int(task_date[5:7])
        if buckets and buckets[0]["year"] == year:
            return month - 1
    return -1


def transform_to_chart_data(tasks, date_range, include_all=False):
    buckets = build_buckets(date_range)

    for task in tasks:
        entry = _task_entry(task, include_all)
        if entry is None:
            continue
        task_date, category, start_minute, end_minute = entry

        if date_range.period == "day":
            if task_date != date_range.start.isoformat():
                continue
            for bucket in buckets:
                slot_start = bucket["hour"] * 60
                overlap = min(end_minute, slot_start + 60) - max(start_minute, slot_start)
                if overlap > 0:
                    bucket[category] += overlap / 60
            continue

        index = _bucket_index(buckets, date_range.period, task_date)
        if index != -1:
            buckets[index][category] += (end_minute - start_minute) / 60

    totals = {category: 0 for category in CATEGORIES}
    for bucket in buckets:
        for category in CATEGORIES:
            totals[category] += bucket[category]

    return {
        "chartData": buckets,
        "totals": totals,
        "periodLabels": list(date_range.labels),
    }


class ChartService:
    def __init__(self, repository, clock=None):
        self.repository = repository
        self.clock = clock or datetime.utcnow

    def chart_for(self, date_param=None, period=None, include_all=False):
        now = self.clock()
        date_range = calculate_date_range(date_param, period, today=now.date())
        tasks = self.repository.query_tasks(
            date_range.start, date_range.end, include_all=include_all
        )
        chart = transform_to_chart_data(tasks, date_range, include_all=include_all)
        chart.update(
            {
                "period": date_range.period,
                "dateRange": {
                    "start": date_range.start.isoformat(),
                    "end": date_range.end.isoformat(),
                },
                "selectedDate": date_param or now.date().isoformat(),
                "tasksProcessed": len(tasks),
                "generatedAt": now.isoformat() + "Z",
            }
        )
        return chart

    def add_tracked_time(self, task_id, seconds):
        """Add seconds (as hours, rounded to 2 decimals) to a task's Actual Duration.

        The read and the write are two separate calls, so concurrent updates
        to the same task race and the last write wins.
        """
        if not task_id or not isinstance(task_id, str) or not _is_finite_number(seconds):
            raise InvalidRequestError("Missing taskId or seconds")

        hours = round(seconds / 3600, 2)
        try:
            current = self.repository.fetch_actual_duration(task_id)
        except UpstreamError as exc:
            raise exc.with_message("Failed to get page") from exc

        total = current + hours
        try:
            self.repository.update_actual_duration(task_id, total)
        except UpstreamError as exc:
            raise exc.with_message("Failed to update page") from exc

        logger.info(
            "tracked time saved",
            extra={"task_id": task_id, "added_hours": hours, "total_hours": total},
        )
        return {
            "success": True,
            "taskId": task_id,
            "addedHours": hours,
            "totalHours": total,
        }
