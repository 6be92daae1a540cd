"""Alert dedup/cooldown registry.

Per (subject_id, level) key there are three states: no record, recently
alerted (inside the cooldown), and eligible again (cooldown elapsed).
IMMEDIATE bypasses the cooldown entirely; NONE never alerts.

Check-and-record for one key is serialized by a per-key lock so two
concurrent analyses for the same subject cannot both see "no record" and
both fire. Different keys only share a short guard on the dicts.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from reflectwell.shared.models import CrisisLevel
from reflectwell.shared.utils import hash_pii
from .clock import ClockSource, SystemClock

logger = logging.getLogger(__name__)

AlertKey = Tuple[str, CrisisLevel]


@dataclass(frozen=True)
class AlertRecord:
    subject_id: str
    level: CrisisLevel
    last_fired_at: datetime


class _KeyLock:
    """Lock plus the number of callers currently using it."""
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class AlertCooldownRegistry:
    """Suppresses repeat alerts for the same subject and level.

    Records older than twice the cooldown are pruned on every write.
    """

    def __init__(
        self,
        cooldown: timedelta = timedelta(hours=24),
        clock: Optional[ClockSource] = None,
    ):
        if cooldown <= timedelta(0):
            raise ValueError(f"Cooldown must be positive, got {cooldown}")
        self.cooldown = cooldown
        self.clock = clock or SystemClock()
        self._records: Dict[AlertKey, AlertRecord] = {}
        self._key_locks: Dict[AlertKey, _KeyLock] = {}
        self._guard = threading.Lock()

    @property
    def retention(self) -> timedelta:
        return self.cooldown * 2

    def should_alert(self, subject_id: Optional[str], level: CrisisLevel) -> bool:
        """Whether an alert for this subject and level would fire now.

        Read-only; use check_and_record() to decide and record atomically.
        """
        if level in (CrisisLevel.NONE, CrisisLevel.ERROR):
            return False
        if level == CrisisLevel.IMMEDIATE:
            return True
        if subject_id is None:
            return False
        with self._guard:
            record = self._records.get((subject_id, level))
        return self._is_eligible(record, self.clock.now())

    def record_alert(self, subject_id: Optional[str], level: CrisisLevel) -> None:
        """Record a confirmed alert, overwriting any prior timestamp for the key."""
        if subject_id is None or level in (CrisisLevel.NONE, CrisisLevel.ERROR):
            return
        key = (subject_id, level)
        with self._locked(key):
            self._write(key, self.clock.now())

    def check_and_record(self, subject_id: Optional[str], level: CrisisLevel) -> bool:
        """Decide whether to alert and, if so, record it in one step.

        Returns:
            True if the alert should fire
        """
        if level in (CrisisLevel.NONE, CrisisLevel.ERROR):
            return False
        if subject_id is None:
            # Nothing to dedupe against; only IMMEDIATE gets through
            return level == CrisisLevel.IMMEDIATE

        key = (subject_id, level)
        with self._locked(key):
            now = self.clock.now()
            if level != CrisisLevel.IMMEDIATE:
                with self._guard:
                    record = self._records.get(key)
                if not self._is_eligible(record, now):
                    logger.info(
                        "ALERT_SUPPRESSED_COOLDOWN",
                        extra={
                            "subject_id_hash": hash_pii(subject_id),
                            "level": level.value,
                            "last_fired_at": record.last_fired_at.isoformat(),
                            "cooldown_hours": self.cooldown.total_seconds() / 3600,
                        }
                    )
                    return False
            self._write(key, now)
            return True

    def clear(self) -> int:
        """Wipe every record (privacy reset). Returns how many were removed."""
        with self._guard:
            removed = len(self._records)
            self._records.clear()
            for key in [k for k, kl in self._key_locks.items() if kl.users == 0]:
                del self._key_locks[key]
        logger.info("ALERT_HISTORY_CLEARED", extra={"records_removed": removed})
        return removed

    def active_count(self) -> int:
        with self._guard:
            return len(self._records)

    def records(self) -> List[AlertRecord]:
        with self._guard:
            return list(self._records.values())

    def _is_eligible(self, record: Optional[AlertRecord], now: datetime) -> bool:
        if record is None:
            return True
        return now - record.last_fired_at > self.cooldown

    def _write(self, key: AlertKey, now: datetime) -> None:
        subject_id, level = key
        with self._guard:
            self._records[key] = AlertRecord(subject_id=subject_id, level=level, last_fired_at=now)
            self._prune(now)

    def _prune(self, now: datetime) -> None:
        """Drop stale records. Caller holds the guard."""
        cutoff = now - self.retention
        stale = [k for k, r in self._records.items() if r.last_fired_at < cutoff]
        for key in stale:
            del self._records[key]
            key_lock = self._key_locks.get(key)
            if key_lock is not None and key_lock.users == 0:
                del self._key_locks[key]
        if stale:
            logger.debug("ALERT_RECORDS_PRUNED", extra={"pruned": len(stale)})

    def _locked(self, key: AlertKey) -> "_HeldKeyLock":
        return _HeldKeyLock(self, key)


class _HeldKeyLock:
    """Context manager holding one key's lock for the duration of a block."""

    def __init__(self, registry: AlertCooldownRegistry, key: AlertKey):
        self.registry = registry
        self.key = key
        self.key_lock: Optional[_KeyLock] = None

    def __enter__(self) -> "_HeldKeyLock":
        registry = self.registry
        with registry._guard:
            key_lock = registry._key_locks.get(self.key)
            if key_lock is None:
                key_lock = registry._key_locks[self.key] = _KeyLock()
            key_lock.users += 1
        self.key_lock = key_lock
        key_lock.lock.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        registry = self.registry
        self.key_lock.lock.release()
        with registry._guard:
            self.key_lock.users -= 1
            if (
                self.key_lock.users == 0
                and self.key not in registry._records
                and registry._key_locks.get(self.key) is self.key_lock
            ):
                del registry._key_locks[self.key]
