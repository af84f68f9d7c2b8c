"""
Cost reporting.

Read-only projections of the usage ledger: trailing-window cost reports and
the free-tier limit warning.

The limit status counts free-tier records per UTC calendar day, while the
router's quota window rolls 24 hours from its last reset. Near midnight the
two can disagree; the report does not try to reconcile them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from ai_provider_router.storage.ledger import UsageLedger
from ai_provider_router.storage.models import as_utc
from .pricing import Provider
from .quota import DEFAULT_DAILY_LIMIT

DEFAULT_REPORT_DAYS = 7
DEFAULT_WARNING_THRESHOLD = 300

PROVIDER_LABELS = {
    Provider.GEMINI: "Gemini",
    Provider.GPT5_NANO: "GPT-5 nano",
    Provider.GPT5_MINI: "GPT-5 mini",
}


@dataclass(frozen=True)
class ProviderBreakdown:
    """Requests and spend attributed to one provider."""
    requests: int
    cost: float


@dataclass(frozen=True)
class CostReport:
    """Cost summary over a trailing window of days."""
    days: int
    window_start: datetime
    window_end: datetime
    total_requests: int
    total_cost: float
    average_cost: float
    by_provider: Dict[Provider, ProviderBreakdown] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "days": self.days,
            "windowStart": self.window_start.isoformat(),
            "windowEnd": self.window_end.isoformat(),
            "totalRequests": self.total_requests,
            "totalCost": self.total_cost,
            "averageCost": self.average_cost,
            "byProvider": {
                provider.value: {"requests": b.requests, "cost": b.cost}
                for provider, b in self.by_provider.items()
            },
        }

    def render(self) -> str:
        """Plain-text report."""
        lines = [
            f"Cost Report (Last {self.days} Days)",
            "=" * 34,
            "",
            f"Total Requests: {self.total_requests}",
            f"Total Cost: ${self.total_cost:.4f}",
            "",
            "By Provider:",
        ]
        for provider, breakdown in self.by_provider.items():
            lines.append(
                f"- {PROVIDER_LABELS[provider]}: {breakdown.requests} requests "
                f"(${breakdown.cost:.4f})"
            )
        lines.extend([
            "",
            f"Average Cost per Request: ${self.average_cost:.6f}",
            "",
            f"Date Range: {self.window_start.date().isoformat()} - "
            f"{self.window_end.date().isoformat()}",
        ])
        return "\n".join(lines)


@dataclass(frozen=True)
class LimitStatus:
    """Free-tier usage for today against the daily limit."""
    warning: bool
    remaining: int
    message: str


def generate_report(
    ledger: UsageLedger,
    days: int = DEFAULT_REPORT_DAYS,
    now: Optional[datetime] = None
) -> CostReport:
    """Summarize the trailing ``days`` days ending at ``now``.

    Args:
        ledger: Ledger to read from
        days: Window length in days (must be > 0)
        now: Window end; defaults to the ledger clock

    Returns:
        CostReport for ``[now - days, now]``
    """
    if days <= 0:
        raise ValueError("days must be > 0")

    window_end = as_utc(now) if now is not None else ledger.now()
    window_start = window_end - timedelta(days=days)
    records = ledger.query(window_start, window_end)

    counts = {provider: 0 for provider in Provider}
    costs = {provider: Decimal("0") for provider in Provider}
    for record in records:
        counts[record.provider] += 1
        costs[record.provider] += Decimal(str(record.cost))

    total_cost = sum(costs.values(), Decimal("0"))
    total_requests = len(records)
    average = total_cost / total_requests if total_requests else Decimal("0")

    return CostReport(
        days=days,
        window_start=window_start,
        window_end=window_end,
        total_requests=total_requests,
        total_cost=float(total_cost),
        average_cost=float(average),
        by_provider={
            provider: ProviderBreakdown(requests=counts[provider], cost=float(costs[provider]))
            for provider in Provider
        }
    )


def check_limit_status(
    ledger: UsageLedger,
    daily_limit: int = DEFAULT_DAILY_LIMIT,
    warning_threshold: int = DEFAULT_WARNING_THRESHOLD,
    day: Optional[date] = None,
    free_provider: Provider = Provider.GEMINI
) -> LimitStatus:
    """Warn when today's free-tier requests approach the daily limit.

    remaining = daily_limit - today's free-tier request count; the warning
    is raised when remaining drops below ``warning_threshold``.
    """
    used = ledger.daily_summary(day).requests[free_provider]
    remaining = daily_limit - used
    warning = remaining < warning_threshold

    message = (
        f"{PROVIDER_LABELS[free_provider]}: {used}/{daily_limit} requests used today "
        f"({remaining} remaining)"
    )
    if warning:
        message += " - approaching daily limit!"

    return LimitStatus(warning=warning, remaining=remaining, message=message)
