"""
Onboarding Progress Persistence.

Saves {data, step_index, timestamp} to a single key-value slot per user so
the wizard can resume after a reload. Snapshots older than the TTL (24h by
default) are treated as absent and erased.

Persistence is best-effort: no method here raises. A broken store makes the
wizard behave as if nothing had been saved.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable

from .state import OnboardingAnswers

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)
KEY_PREFIX = "onboarding_progress"


def _utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def _parse_iso(iso_str: str) -> datetime:
    """Parse an ISO timestamp, assuming UTC when no offset is given."""
    if iso_str.endswith("Z"):
        iso_str = iso_str[:-1] + "+00:00"
    parsed = datetime.fromisoformat(iso_str)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def progress_key(user_id: str) -> str:
    """Storage key for a user's onboarding attempt."""
    return f"{KEY_PREFIX}:{user_id}"


# =============================================================================
# Key-Value Stores
# =============================================================================


@runtime_checkable
class KeyValueStore(Protocol):
    """Durable string slot storage. Any method may raise."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store for tests and dry runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileKeyValueStore:
    """
    All slots in one JSON object on disk.

    Writes go through a temp file and rename so a crash never leaves a
    half-written file behind.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text(encoding="utf-8"))

    def _write_all(self, data: dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if data.pop(key, None) is not None:
                self._write_all(data)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._read_all())


class SupabaseKeyValueStore:
    """
    Slots stored in the onboarding_sessions table.

    Table: onboarding_sessions(key text primary key, value text, updated_at timestamptz)
    """

    table = "onboarding_sessions"

    def __init__(self, client: Any):
        self.client = client

    def get(self, key: str) -> str | None:
        result = (
            self.client.table(self.table)
            .select("value")
            .eq("key", key)
            .maybe_single()
            .execute()
        )
        # maybe_single() returns None on no rows in some client versions
        if result is None or not result.data:
            return None
        return result.data.get("value")

    def set(self, key: str, value: str) -> None:
        self.client.table(self.table).upsert(
            {
                "key": key,
                "value": value,
                "updated_at": _utc_now().isoformat(),
            },
            on_conflict="key",
        ).execute()

    def remove(self, key: str) -> None:
        self.client.table(self.table).delete().eq("key", key).execute()


# =============================================================================
# Progress Persistence
# =============================================================================


@dataclass
class SavedProgress:
    """What load() hands back to the wizard."""
    answers: OnboardingAnswers = field(default_factory=OnboardingAnswers)
    step_index: int = 0
    saved_at: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.saved_at is None


class ProgressPersistence:
    """Best-effort snapshot slot for one user's onboarding attempt."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        ttl: timedelta = DEFAULT_TTL,
        now: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.key = key
        self.ttl = ttl
        self._now = now

    def load(self) -> SavedProgress:
        """
        Read the stored snapshot.

        Returns an empty SavedProgress if nothing is stored, the snapshot
        is expired, or it cannot be parsed. Expired and broken entries are
        erased.
        """
        try:
            raw = self.store.get(self.key)
        except Exception as e:
            logger.warning(f"Failed to read onboarding progress ({self.key}): {e}")
            return SavedProgress()

        if raw is None:
            return SavedProgress()

        try:
            payload = json.loads(raw)
            saved_at = _parse_iso(payload["timestamp"])
            step_index = int(payload["step_index"])
            answers = OnboardingAnswers.from_dict(payload["data"])
        except Exception as e:
            logger.warning(f"Discarding unreadable onboarding progress ({self.key}): {e}")
            self.clear()
            return SavedProgress()

        if self._now() - saved_at >= self.ttl:
            logger.info(f"Discarding expired onboarding progress ({self.key}), saved {saved_at.isoformat()}")
            self.clear()
            return SavedProgress()

        return SavedProgress(answers=answers, step_index=step_index, saved_at=saved_at)

    def save(self, answers: OnboardingAnswers, step_index: int) -> bool:
        """
        Write the snapshot, overwriting any previous one.

        Returns False if the store rejected the write (e.g. quota).
        """
        payload = {
            "data": answers.to_dict(),
            "step_index": step_index,
            "timestamp": self._now().isoformat(),
        }
        try:
            self.store.set(self.key, json.dumps(payload))
            return True
        except Exception as e:
            logger.warning(f"Failed to save onboarding progress ({self.key}): {e}")
            return False

    def clear(self) -> None:
        """Remove the snapshot."""
        try:
            self.store.remove(self.key)
        except Exception as e:
            logger.warning(f"Failed to clear onboarding progress ({self.key}): {e}")
