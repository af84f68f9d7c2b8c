"""
Usage ledger.

Append-only record of every completed generation call, with calendar-based
aggregates computed on demand from the record stream.
"""

import json
import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from ai_provider_router.core.errors import LedgerWriteError
from ai_provider_router.core.pricing import Provider
from .models import UsageEntry, UsageRecord, UsageSummary, as_utc
from .writer import JsonlFileWriter, JsonSnapshotFile, SequentialWriter

logger = logging.getLogger(__name__)

USAGE_LOG_FILENAME = "usage.jsonl"
SUMMARY_FILENAME = "daily-summary.json"
DEFAULT_LOG_DIR = ".cost-logs"

_ONE_MICROSECOND = timedelta(microseconds=1)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def day_bounds(day: date) -> tuple:
    """Inclusive UTC bounds of a calendar day."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1) - _ONE_MICROSECOND


def month_bounds(year: int, month: int) -> tuple:
    """Inclusive UTC bounds of a calendar month."""
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        next_start = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        next_start = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, next_start - _ONE_MICROSECOND


def summarize(period: str, records: Iterable[UsageRecord]) -> UsageSummary:
    """Aggregate records into per-provider counts and costs.

    Sums are accumulated as Decimal so totals match the per-record costs
    exactly.
    """
    summary = UsageSummary(period=period)
    cost_totals: Dict[Provider, Decimal] = {provider: Decimal("0") for provider in Provider}

    for record in records:
        summary.requests[record.provider] += 1
        cost_totals[record.provider] += Decimal(str(record.cost))

    for provider, total in cost_totals.items():
        summary.cost_by_provider[provider] = float(total)
    summary.total_cost = float(sum(cost_totals.values(), Decimal("0")))
    return summary


class UsageLedger:
    """Append-only usage ledger.

    ``record`` never raises: a storage failure is logged and the record is
    dropped, so accounting can never break the generation path.
    """

    def __init__(
        self,
        writer: SequentialWriter,
        snapshot: Optional[JsonSnapshotFile] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.writer = writer
        self.snapshot = snapshot
        self._clock = clock or _utc_now

    @classmethod
    def open(cls, log_dir: Union[str, Path] = DEFAULT_LOG_DIR) -> "UsageLedger":
        """File-backed ledger under ``log_dir`` (created on first write)."""
        directory = Path(log_dir)
        return cls(
            writer=JsonlFileWriter(directory / USAGE_LOG_FILENAME),
            snapshot=JsonSnapshotFile(directory / SUMMARY_FILENAME)
        )

    def now(self) -> datetime:
        return as_utc(self._clock())

    def record(self, entry: UsageEntry) -> Optional[UsageRecord]:
        """Stamp and append a usage entry.

        Returns:
            The stored record, or None if it could not be written
        """
        try:
            record = UsageRecord.stamp(entry, self.now())
            self.writer.append(json.dumps(record.to_dict()))
        except Exception:
            # Usage tracking never fails the caller
            logger.exception(
                "Failed to record usage for %s (%s)", entry.provider.value, entry.operation
            )
            return None
        return record

    def query(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[UsageRecord]:
        """Records with ``start <= timestamp <= end``, oldest first."""
        start = as_utc(start) if start is not None else None
        end = as_utc(end) if end is not None else None

        records = []
        for record in self._load_records():
            if start is not None and record.timestamp < start:
                continue
            if end is not None and record.timestamp > end:
                continue
            records.append(record)
        return records

    def recent_usage(self, limit: int = 100) -> List[UsageRecord]:
        """The most recently appended records, newest first."""
        if limit <= 0:
            return []
        records = self._load_records()
        return list(reversed(records[-limit:]))

    def daily_summary(self, day: Optional[date] = None) -> UsageSummary:
        """Aggregate for one UTC calendar day (today by default)."""
        day = day or self.now().date()
        start, end = day_bounds(day)
        return summarize(day.isoformat(), self.query(start, end))

    def monthly_summary(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> UsageSummary:
        """Aggregate for one UTC calendar month (current month by default)."""
        today = self.now()
        if year is None:
            year = today.year
        if month is None:
            month = today.month
        start, end = month_bounds(year, month)
        return summarize(f"{year}-{month:02d}", self.query(start, end))

    def save_daily_summary(self, day: Optional[date] = None) -> Optional[UsageSummary]:
        """Update or append the day's summary in the snapshot file.

        Returns:
            The saved summary, or None if no snapshot is configured or the
            write failed
        """
        if self.snapshot is None:
            logger.warning("No summary snapshot configured; skipping save")
            return None

        summary = self.daily_summary(day)
        summaries = self.get_daily_summaries()
        for i, existing in enumerate(summaries):
            if existing.period == summary.period:
                summaries[i] = summary
                break
        else:
            summaries.append(summary)

        try:
            self.snapshot.save([s.to_dict() for s in summaries])
        except LedgerWriteError:
            logger.exception("Failed to save daily summary for %s", summary.period)
            return None
        return summary

    def get_daily_summaries(self) -> List[UsageSummary]:
        """Snapshot contents, in saved order. Empty when nothing was saved."""
        if self.snapshot is None:
            return []
        data = self.snapshot.load()
        if not data:
            return []
        return [UsageSummary.from_dict(item) for item in data]

    def _load_records(self) -> List[UsageRecord]:
        records = []
        for line_number, line in enumerate(self.writer.read_lines(), start=1):
            try:
                records.append(UsageRecord.from_dict(json.loads(line)))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed usage line %d: %s", line_number, e)
        return records
