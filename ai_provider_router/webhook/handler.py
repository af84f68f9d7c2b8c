"""
Signed webhook intake.

Verifies an HMAC-SHA256 signature over the raw body, extracts a few fields
from recognized event types, and appends every verified payload to a
per-day JSONL log. Framework-free: HTTP wiring belongs to the caller.
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from ai_provider_router.core.errors import LedgerWriteError
from ai_provider_router.storage.writer import JsonlFileWriter, SequentialWriter

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="
SUPPORTED_EVENTS = frozenset({"push", "pull_request", "issues", "issue_comment"})
DEFAULT_WEBHOOK_LOG_DIR = ".webhook-logs"


@dataclass(frozen=True)
class WebhookResult:
    """Status code and JSON body to send back to the caller."""
    status_code: int
    body: Dict[str, Any]


def compute_signature(secret: str, body: bytes) -> str:
    """``sha256=<hex digest>`` of ``body`` keyed by ``secret``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Constant-time check of a ``sha256=`` signature header."""
    if not secret or not signature:
        return False
    return hmac.compare_digest(compute_signature(secret, body), signature)


def extract_event(event_type: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Pull the fields worth keeping from a supported event, else None."""
    if event_type == "push":
        commits = payload.get("commits")
        return {
            "ref": payload.get("ref"),
            "repo": (payload.get("repository") or {}).get("full_name"),
            "pusher": (payload.get("pusher") or {}).get("name"),
            "commits": len(commits) if isinstance(commits, list) else 0,
        }
    if event_type == "pull_request":
        pull_request = payload.get("pull_request") or {}
        return {
            "action": payload.get("action"),
            "pr_number": payload.get("number"),
            "title": pull_request.get("title"),
            "state": pull_request.get("state"),
            "merged": pull_request.get("merged"),
        }
    if event_type == "issues":
        issue = payload.get("issue") or {}
        return {
            "action": payload.get("action"),
            "issue_number": issue.get("number"),
            "title": issue.get("title"),
        }
    if event_type == "issue_comment":
        body = (payload.get("comment") or {}).get("body") or ""
        return {
            "action": payload.get("action"),
            "issue_number": (payload.get("issue") or {}).get("number"),
            "comment_preview": body[:100],
        }
    return None


class DailyLogWriterFactory:
    """Returns a JSONL writer for ``<log_dir>/<YYYY-MM-DD>.jsonl``."""

    def __init__(self, log_dir: Union[str, Path] = DEFAULT_WEBHOOK_LOG_DIR):
        self.log_dir = Path(log_dir)

    def __call__(self, now: datetime) -> SequentialWriter:
        return JsonlFileWriter(self.log_dir / f"{now.date().isoformat()}.jsonl")


class WebhookHandler:
    """Verifies and logs incoming webhook deliveries."""

    def __init__(
        self,
        secret: Optional[str],
        writer_for: Optional[Callable[[datetime], SequentialWriter]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.secret = secret or ""
        self._writer_for = writer_for or DailyLogWriterFactory()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def handle(
        self,
        body: bytes,
        signature: Optional[str],
        event_type: Optional[str]
    ) -> WebhookResult:
        if not self.secret:
            return WebhookResult(401, {"error": "Webhook secret is not configured"})
        if not signature:
            return WebhookResult(401, {"error": "Missing signature header"})
        if not verify_signature(self.secret, body, signature):
            return WebhookResult(401, {"error": "Invalid signature"})

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return WebhookResult(400, {"error": "Invalid JSON payload"})
        if not isinstance(payload, dict):
            return WebhookResult(400, {"error": "Invalid JSON payload"})

        event_type = event_type or ""
        supported = event_type in SUPPORTED_EVENTS
        extracted = extract_event(event_type, payload) if supported else None

        now = self._clock()
        self._log_event(now, {
            "timestamp": now.isoformat(),
            "event": event_type,
            "payload": payload,
            "extracted": extracted,
        })

        return WebhookResult(200, {
            "status": "processed" if supported else "ignored",
            "event": event_type,
            "timestamp": now.isoformat(),
        })

    def _log_event(self, now: datetime, entry: Dict[str, Any]) -> None:
        try:
            self._writer_for(now).append(json.dumps(entry))
        except (LedgerWriteError, TypeError, ValueError):
            logger.exception("Webhook logging failed for event %r", entry.get("event"))
