"""
PersistentStore: capacity- and TTL-bounded storage over redundant tiers.

Entries are namespaced by (kind, entity_id, sub_kind) and stored as
``{"payload": ..., "storedAtEpochMs": ...}``. Writes fan out to every tier
best-effort; reads return the newest live copy across tiers. No storage failure
ever propagates to the caller: public methods degrade to False/None/[].

Expiry is lazy (checked on read); cleanup() is the explicit sweep.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Sequence

from loguru import logger
from pydantic import ValidationError

from quiz_engine.config import Settings, get_settings
from quiz_engine.errors import StorageError, StorageQuotaExceededError, StorageUnavailableError
from quiz_engine.models import QuizHistoryEntry

from .backends import JsonFileBackend, MemoryBackend, StorageBackend

AUTH_FLOW_KEY = "quiz_auth_timestamp"
LEGACY_PROGRESS_PREFIX = "quiz-progress-"


class StorageKind(str, Enum):
    """Kinds of stored entries. The value is the key prefix."""
    PROGRESS = "quiz_progress"
    TEMP_RESULT = "temp_quiz_results"
    PENDING_RESULT = "pending_quiz_results"
    HISTORY = "quiz_history"


@dataclass(frozen=True)
class KindPolicy:
    """Retention rules for one kind (seconds; None disables the rule)."""

    ttl: float | None = None
    max_age: float | None = None
    capacity: int | None = None


@dataclass(frozen=True)
class StoredRecord:
    """A live entry as returned by PersistentStore.entries()."""

    entity_id: str
    sub_kind: str
    payload: Any
    stored_at_ms: int


def build_policies(settings: Settings) -> dict[StorageKind, KindPolicy]:
    """Default retention policy per kind."""
    config = settings.get_storage_config()
    capacity = int(config["capacity"])
    return {
        StorageKind.PROGRESS: KindPolicy(ttl=None, max_age=config["progress_max_age"], capacity=capacity),
        StorageKind.TEMP_RESULT: KindPolicy(
            ttl=config["temp_result_ttl"], max_age=config["result_max_age"], capacity=capacity
        ),
        StorageKind.PENDING_RESULT: KindPolicy(
            ttl=config["pending_result_ttl"], max_age=config["result_max_age"], capacity=capacity
        ),
        StorageKind.HISTORY: KindPolicy(),
    }


def make_key(kind: StorageKind, entity_id: str, sub_kind: str) -> str:
    """Composite key: {kind}_{entityId}_{subKind}."""
    return f"{kind.value}_{entity_id}_{sub_kind}"


def legacy_timestamp_ms(value: Any, default: int) -> int:
    """Epoch milliseconds from a legacy ISO string or number."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return default
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    return default


class PersistentStore:
    """
    The only component that touches storage tiers.

    Args:
        backends: Tiers in read order; defaults to [durable files, session memory]
        settings: Engine settings (defaults to get_settings())
        policies: Per-kind overrides of the retention policy
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        backends: Sequence[StorageBackend] | None = None,
        settings: Settings | None = None,
        policies: dict[StorageKind, KindPolicy] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        if backends is None:
            backends = [
                JsonFileBackend(self.settings.storage_dir, name="local"),
                MemoryBackend(name="session"),
            ]
        self.backends = list(backends)
        self.policies = build_policies(self.settings)
        if policies:
            self.policies.update(policies)
        self.clock = clock

    # =========================================================================
    # Helpers
    # =========================================================================

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    def backend(self, name: str) -> StorageBackend | None:
        return next((b for b in self.backends if b.name == name), None)

    def _write(self, key: str, raw: str) -> bool:
        """Fan a write out to every tier. True if at least one tier accepted it."""
        if len(raw.encode("utf-8")) > self.settings.max_entry_bytes:
            logger.warning(f"Value too large for storage key {key!r}: {len(raw)} bytes")
            return False

        written = False
        for backend in self.backends:
            for attempt in range(1, self.settings.write_retries + 1):
                try:
                    backend.put(key, raw)
                    written = True
                    break
                except StorageQuotaExceededError as e:
                    logger.warning(f"Storage quota exceeded in {backend.name} tier for {key!r}: {e}")
                    break
                except StorageUnavailableError as e:
                    logger.warning(f"Storage tier {backend.name} unavailable for {key!r}: {e}")
                    break
                except (StorageError, OSError) as e:
                    logger.warning(
                        f"Storage write attempt {attempt}/{self.settings.write_retries} "
                        f"failed in {backend.name} tier for {key!r}: {e}"
                    )
        return written

    def _delete(self, backend: StorageBackend, key: str) -> None:
        try:
            backend.remove(key)
        except (StorageError, OSError) as e:
            logger.warning(f"Storage removal error in {backend.name} tier for {key!r}: {e}")

    def _keys(self, backend: StorageBackend, prefix: str = "") -> list[str]:
        try:
            return [k for k in backend.keys() if k.startswith(prefix)]
        except (StorageError, OSError) as e:
            logger.warning(f"Could not list keys in {backend.name} tier: {e}")
            return []

    def _read_entry(self, backend: StorageBackend, key: str) -> dict | None:
        """Parsed entry, or None when missing, unreadable or malformed."""
        try:
            raw = backend.get(key)
        except (StorageError, OSError) as e:
            logger.warning(f"Storage read error in {backend.name} tier for {key!r}: {e}")
            return None
        if raw is None:
            return None

        try:
            entry = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Corrupt entry in {backend.name} tier for {key!r}: {e}")
            return None

        if (
            not isinstance(entry, dict)
            or "payload" not in entry
            or not isinstance(entry.get("storedAtEpochMs"), (int, float))
            or isinstance(entry.get("storedAtEpochMs"), bool)
        ):
            logger.warning(f"Malformed entry in {backend.name} tier for {key!r}")
            return None
        return entry

    def _age_seconds(self, entry: dict) -> float:
        return (self.now_ms() - entry["storedAtEpochMs"]) / 1000

    def _is_expired(self, kind: StorageKind, entry: dict) -> bool:
        ttl = self.policies[kind].ttl
        return ttl is not None and self._age_seconds(entry) > ttl

    # =========================================================================
    # Public API
    # =========================================================================

    def put(self, kind: StorageKind, entity_id: str, sub_kind: str, payload: Any) -> bool:
        """Write an entry to every tier (best-effort), then enforce the kind's capacity."""
        key = make_key(kind, entity_id, sub_kind)
        entry = {
            "payload": payload,
            "storedAtEpochMs": self.now_ms(),
            "entityId": entity_id,
            "subKind": sub_kind,
        }
        try:
            raw = json.dumps(entry)
        except (TypeError, ValueError) as e:
            logger.warning(f"Payload for {key!r} is not serializable: {e}")
            return False

        written = self._write(key, raw)
        if written:
            logger.debug(f"Stored {key}")
            self._enforce_capacity(kind)
        return written

    def get(self, kind: StorageKind, entity_id: str, sub_kind: str) -> Any | None:
        """
        Payload of the most recently written live entry across tiers, else None.

        A write that reached only some tiers leaves older copies behind in the
        others, so the newest storedAtEpochMs wins. Ties go to the first tier.
        """
        key = make_key(kind, entity_id, sub_kind)
        newest = None
        for backend in self.backends:
            entry = self._read_entry(backend, key)
            if entry is None:
                continue
            if self._is_expired(kind, entry):
                logger.debug(f"Entry {key!r} in {backend.name} tier has expired")
                continue
            if newest is None or entry["storedAtEpochMs"] > newest["storedAtEpochMs"]:
                newest = entry
        return None if newest is None else newest["payload"]

    def get_from(self, tier: str, kind: StorageKind, entity_id: str, sub_kind: str) -> Any | None:
        """Like get(), restricted to one named tier."""
        backend = self.backend(tier)
        if backend is None:
            return None
        entry = self._read_entry(backend, make_key(kind, entity_id, sub_kind))
        if entry is None or self._is_expired(kind, entry):
            return None
        return entry["payload"]

    def remove(self, kind: StorageKind, entity_id: str, sub_kind: str) -> None:
        """Delete from every tier. Idempotent."""
        key = make_key(kind, entity_id, sub_kind)
        for backend in self.backends:
            self._delete(backend, key)

    def entries(self, kind: StorageKind) -> list[StoredRecord]:
        """Live entries of a kind across all tiers, newest write first."""
        newest: dict[str, StoredRecord] = {}
        for backend in self.backends:
            for key in self._keys(backend, f"{kind.value}_"):
                entry = self._read_entry(backend, key)
                if entry is None or self._is_expired(kind, entry):
                    continue
                record = StoredRecord(
                    entity_id=str(entry.get("entityId", "")),
                    sub_kind=str(entry.get("subKind", "")),
                    payload=entry["payload"],
                    stored_at_ms=int(entry["storedAtEpochMs"]),
                )
                current = newest.get(key)
                if current is None or record.stored_at_ms > current.stored_at_ms:
                    newest[key] = record
        return sorted(newest.values(), key=lambda r: r.stored_at_ms, reverse=True)

    def cleanup(self) -> int:
        """
        Explicit maintenance sweep.

        Removes entries older than their kind's age threshold (and unreadable
        entries), then caps each kind at its capacity, oldest write first.

        Returns:
            Number of entries removed across all tiers
        """
        removed = 0
        now = self.now_ms()
        for kind, policy in self.policies.items():
            limit = policy.max_age
            if policy.ttl is not None:
                limit = policy.ttl if limit is None else min(limit, policy.ttl)
            for backend in self.backends:
                for key in self._keys(backend, f"{kind.value}_"):
                    entry = self._read_entry(backend, key)
                    too_old = (
                        entry is not None
                        and limit is not None
                        and (now - entry["storedAtEpochMs"]) / 1000 > limit
                    )
                    if entry is None or too_old:
                        self._delete(backend, key)
                        removed += 1
            removed += self._enforce_capacity(kind)

        if not self.auth_flow_active():
            self.clear_auth_flow()

        if removed:
            logger.info(f"Storage cleanup removed {removed} entries")
        return removed

    def _enforce_capacity(self, kind: StorageKind) -> int:
        """Evict oldest-written entries of a kind beyond its capacity, per tier."""
        capacity = self.policies[kind].capacity
        if capacity is None:
            return 0

        evicted = 0
        for backend in self.backends:
            keys = self._keys(backend, f"{kind.value}_")
            if len(keys) <= capacity:
                continue
            dated = []
            for key in keys:
                entry = self._read_entry(backend, key)
                # Unreadable entries go first
                stored_at = entry["storedAtEpochMs"] if entry is not None else float("-inf")
                dated.append((stored_at, key))
            dated.sort(key=lambda item: item[0])
            for _, key in dated[: len(dated) - capacity]:
                self._delete(backend, key)
                evicted += 1
        if evicted:
            logger.debug(f"Evicted {evicted} {kind.value} entries over capacity {capacity}")
        return evicted

    def clear_all(self) -> None:
        """Remove every engine-owned key from every tier."""
        prefixes = tuple(f"{kind.value}_" for kind in StorageKind) + (AUTH_FLOW_KEY,)
        for backend in self.backends:
            for key in self._keys(backend):
                if key.startswith(prefixes):
                    self._delete(backend, key)

    def storage_size(self, tier: str | None = None) -> int:
        """
        Approximate footprint as the sum of key and value lengths.

        Args:
            tier: Restrict to one named tier; all tiers when None

        Returns:
            Total characters; unreadable tiers count as 0
        """
        total = 0
        for backend in self.backends:
            if tier is not None and backend.name != tier:
                continue
            for key in self._keys(backend):
                try:
                    value = backend.get(key)
                except (StorageError, OSError) as e:
                    logger.warning(f"Storage read error in {backend.name} tier for {key!r}: {e}")
                    continue
                total += len(key) + len(value or "")
        return total

    def migrate_legacy_progress(self) -> int:
        """
        Move ``quiz-progress-{entity}_{subKind}`` keys into the current layout.

        Legacy keys are removed whether or not their value could be migrated.

        Returns:
            Number of snapshots migrated
        """
        migrated = 0
        for backend in self.backends:
            for key in self._keys(backend, LEGACY_PROGRESS_PREFIX):
                try:
                    if self._migrate_legacy_key(backend, key):
                        migrated += 1
                finally:
                    self._delete(backend, key)
        if migrated:
            logger.info(f"Migrated {migrated} legacy progress entries")
        return migrated

    def _migrate_legacy_key(self, backend: StorageBackend, key: str) -> bool:
        try:
            raw = backend.get(key)
            data = json.loads(raw) if raw is not None else None
        except (StorageError, OSError, json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Failed to migrate {key!r} in {backend.name} tier: {e}")
            return False
        if not isinstance(data, dict):
            logger.warning(f"Failed to migrate {key!r} in {backend.name} tier: not an object")
            return False

        parts = key[len(LEGACY_PROGRESS_PREFIX):].split("_")
        if len(parts) < 2:
            logger.warning(f"Failed to migrate {key!r}: no sub kind in key")
            return False
        entity_id, sub_kind = parts[0], "_".join(parts[1:])

        snapshot = {
            "slug": entity_id,
            "quizType": sub_kind,
            "currentQuestionIndex": data.get("currentQuestionIndex") or 0,
            "answers": data.get("answers") or {},
            "timeSpent": data.get("timeSpent") or 0,
            "lastUpdated": legacy_timestamp_ms(data.get("lastUpdated"), self.now_ms()),
            "isCompleted": bool(data.get("isCompleted")),
        }
        return self.put(StorageKind.PROGRESS, entity_id, sub_kind, snapshot)

    # =========================================================================
    # Quiz History
    # =========================================================================

    def history(self) -> list[QuizHistoryEntry]:
        """Recently completed quizzes, most recent first."""
        payload = self.get(StorageKind.HISTORY, "recent", "all")
        if not isinstance(payload, list):
            return []
        entries = []
        for item in payload:
            try:
                entries.append(QuizHistoryEntry.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping unreadable history entry: {e}")
        return entries

    def add_history(self, entry: QuizHistoryEntry) -> bool:
        """Record a completion, replacing any earlier entry for the same quiz."""
        entries = [
            e for e in self.history()
            if not (e.slug == entry.slug and e.quiz_type == entry.quiz_type)
        ]
        entries.append(entry)
        entries.sort(key=lambda e: e.completed_at, reverse=True)
        entries = entries[: self.settings.history_limit]
        return self.put(StorageKind.HISTORY, "recent", "all", [e.to_payload() for e in entries])

    # =========================================================================
    # Progress & Pending Results
    # =========================================================================

    def incomplete_progress(self) -> list[dict]:
        """Saved in-progress snapshots not marked completed, newest first."""
        return [
            record.payload
            for record in self.entries(StorageKind.PROGRESS)
            if isinstance(record.payload, dict) and not record.payload.get("isCompleted")
        ]

    def pending_results(self) -> list[Any]:
        """Results held for users who have not signed in yet, newest first."""
        return [record.payload for record in self.entries(StorageKind.PENDING_RESULT)]

    # =========================================================================
    # Auth Flow Marker
    # =========================================================================

    def mark_auth_flow(self) -> bool:
        """Flag that a sign-in redirect is in progress."""
        raw = json.dumps({"payload": None, "storedAtEpochMs": self.now_ms()})
        return self._write(AUTH_FLOW_KEY, raw)

    def auth_flow_active(self) -> bool:
        """True while a recent auth-flow marker exists."""
        window = self.settings.auth_flow_window_minutes * 60
        for backend in self.backends:
            entry = self._read_entry(backend, AUTH_FLOW_KEY)
            if entry is not None and self._age_seconds(entry) < window:
                return True
        return False

    def clear_auth_flow(self) -> None:
        for backend in self.backends:
            self._delete(backend, AUTH_FLOW_KEY)
