"""
scorebridge.rejection_log - Local log of rejected messages
==========================================================

Every message refused by the validator can be recorded for later review.
Only a hash of the message is kept, never the message itself.

Usage:
    from scorebridge import RejectionLogger, validate_message, ValidationError

    rejections = RejectionLogger()
    try:
        validate_message(text)
    except ValidationError as e:
        rejections.log(e, text)

    print(rejections.get_stats())
"""

import hashlib
import json
import logging
import threading
from collections import Counter
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Dict, Optional, Any, Iterator

from .errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class RejectionEntry:
    """A logged validation rejection."""

    message_hash: str          # SHA256 of the rejected message
    short_hash: str            # First 8 chars for display
    reason: str                # empty, invalid_characters, invalid
    offending_characters: List[str]
    message_length: int
    timestamp: str             # ISO format UTC
    timestamp_unix: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RejectionEntry":
        return cls(**data)

    def summary(self) -> str:
        """Human-readable one-liner."""
        chars = " ".join(repr(c) for c in self.offending_characters[:10])
        return f"[{self.short_hash}] {self.reason} {chars} ({self.message_length} chars) @ {self.timestamp}"


class RejectionLogger:
    """
    Appends rejections to daily JSONL files.

    Args:
        log_dir: Directory to store logs. Defaults to ~/.scorebridge/rejections/
    """

    DEFAULT_LOG_DIR = Path.home() / ".scorebridge" / "rejections"

    def __init__(self, log_dir: Optional[str] = None):
        self.log_dir = Path(log_dir) if log_dir else self.DEFAULT_LOG_DIR
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _log_file_for(self, day: datetime) -> Path:
        return self.log_dir / f"rejections-{day.strftime('%Y-%m-%d')}.jsonl"

    def log(self, error: ValidationError, message: Optional[str]) -> RejectionEntry:
        """
        Record a rejection.

        Args:
            error: The ValidationError raised by the validator
            message: The rejected message (hashed, not stored)
        """
        text = message if isinstance(message, str) else ""
        digest = hashlib.sha256(text.encode("utf-8", errors="replace")).hexdigest()
        now = datetime.now(timezone.utc)

        entry = RejectionEntry(
            message_hash=digest,
            short_hash=digest[:8],
            reason=getattr(error, "reason", "invalid"),
            offending_characters=list(getattr(error, "offending", [])),
            message_length=len(text),
            timestamp=now.isoformat(),
            timestamp_unix=now.timestamp()
        )

        with self._lock:
            with open(self._log_file_for(now), "a") as f:
                f.write(entry.to_json() + "\n")

        logger.debug("Logged rejection %s (%s)", entry.short_hash, entry.reason)
        return entry

    def get_entries(self, days: int = 7, reason: Optional[str] = None) -> Iterator[RejectionEntry]:
        """
        Iterate over logged rejections, newest day first.

        Args:
            days: Number of days of history to include
            reason: Only include this rejection reason
        """
        for i in range(days):
            day = datetime.now(timezone.utc) - timedelta(days=i)
            log_file = self._log_file_for(day)
            if not log_file.exists():
                continue

            with open(log_file, "r") as f:
                for line in f:
                    try:
                        entry = RejectionEntry.from_dict(json.loads(line))
                    except (json.JSONDecodeError, TypeError):
                        continue
                    if reason and entry.reason != reason:
                        continue
                    yield entry

    def get_stats(self, days: int = 7) -> Dict[str, Any]:
        """Aggregate statistics for the rejection log."""
        entries = list(self.get_entries(days=days))
        if not entries:
            return {"total": 0, "days": days}

        by_reason = Counter(e.reason for e in entries)
        by_char = Counter(c for e in entries for c in e.offending_characters)

        return {
            "total": len(entries),
            "days": days,
            "by_reason": dict(by_reason),
            "top_characters": dict(by_char.most_common(10)),
            "unique_messages": len(set(e.message_hash for e in entries))
        }

    def clear(self) -> int:
        """Delete all rejection logs. Returns the number of files removed."""
        removed = 0
        with self._lock:
            for f in self.log_dir.glob("rejections-*.jsonl"):
                f.unlink()
                removed += 1
        return removed
