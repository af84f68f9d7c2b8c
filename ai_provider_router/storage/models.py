"""
Data models for storage layer.

Defines usage records and the summaries derived from them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ai_provider_router.core.pricing import Provider


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(value))


@dataclass(frozen=True)
class UsageEntry:
    """A completed provider call waiting to be stamped and appended."""
    provider: Provider
    tokens_input: int
    tokens_output: int
    cost: float
    operation: str
    issue_number: Optional[int] = None

    def __post_init__(self):
        """Validate counts and cost are non-negative."""
        if self.tokens_input < 0 or self.tokens_output < 0:
            raise ValueError("token counts cannot be negative")
        if self.cost < 0:
            raise ValueError("cost cannot be negative")
        if not self.operation or not self.operation.strip():
            raise ValueError("operation is required and cannot be empty")


@dataclass(frozen=True)
class UsageRecord:
    """Immutable ledger line for one completed provider call.

    Append-only: once written, a record is never modified or deleted.
    """
    timestamp: datetime
    provider: Provider
    tokens_input: int
    tokens_output: int
    cost: float
    operation: str
    issue_number: Optional[int] = None

    @classmethod
    def stamp(cls, entry: UsageEntry, timestamp: datetime) -> "UsageRecord":
        return cls(
            timestamp=as_utc(timestamp),
            provider=entry.provider,
            tokens_input=entry.tokens_input,
            tokens_output=entry.tokens_output,
            cost=entry.cost,
            operation=entry.operation,
            issue_number=entry.issue_number
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "provider": self.provider.value,
            "tokensInput": self.tokens_input,
            "tokensOutput": self.tokens_output,
            "cost": self.cost,
            "operation": self.operation,
        }
        if self.issue_number is not None:
            data["issueNumber"] = self.issue_number
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageRecord":
        """Rebuild a record from its JSON form.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a field has an invalid value
        """
        return cls(
            timestamp=_parse_timestamp(data["timestamp"]),
            provider=Provider(data["provider"]),
            tokens_input=int(data["tokensInput"]),
            tokens_output=int(data["tokensOutput"]),
            cost=float(data["cost"]),
            operation=data.get("operation", ""),
            issue_number=data.get("issueNumber")
        )


def _zero_by_provider(value) -> Dict[Provider, Any]:
    return {provider: value for provider in Provider}


@dataclass
class UsageSummary:
    """Aggregate of the records in one calendar day or month.

    Derived on demand from the ledger; a saved snapshot is a cache only.
    """
    period: str
    requests: Dict[Provider, int] = field(default_factory=lambda: _zero_by_provider(0))
    cost_by_provider: Dict[Provider, float] = field(default_factory=lambda: _zero_by_provider(0.0))
    total_cost: float = 0.0

    @property
    def total_requests(self) -> int:
        return sum(self.requests.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.period,
            "requests": {p.value: n for p, n in self.requests.items()},
            "costByProvider": {p.value: c for p, c in self.cost_by_provider.items()},
            "totalCost": self.total_cost,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageSummary":
        summary = cls(period=data["date"], total_cost=float(data.get("totalCost", 0.0)))
        for key, count in data.get("requests", {}).items():
            summary.requests[Provider(key)] = int(count)
        for key, cost in data.get("costByProvider", {}).items():
            summary.cost_by_provider[Provider(key)] = float(cost)
        return summary
