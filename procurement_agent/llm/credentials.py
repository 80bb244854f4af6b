"""
Credential rotation for the primary text provider.

A pool of API keys is rotated round-robin whenever the active key fails.
Quota failures exclude the key until a cool-down (24h by default, measured
from the last rotation) has passed or an operator resets the pool.

All slot mutations run under one ``threading.Lock`` so only one rotation
decision is in flight per process. Reading ``active_slot`` without the lock
may observe the previous slot, which only delays the switch by one call.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from procurement_agent.exceptions import (
    ConfigurationError,
    CredentialsExhausted,
    QuotaExceededError,
)
from procurement_agent.models import CredentialSlot, CredentialState

logger = logging.getLogger(__name__)

MAX_RECENT_ERRORS = 5

QUOTA_MARKERS = ("quota", "rate limit", "rate-limit", "too many requests", "exceeded")


def is_quota_error(error: BaseException) -> bool:
    """True for HTTP 429 or messages that mention quota / rate limits."""
    if isinstance(error, QuotaExceededError):
        return True
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    if status == 429:
        return True
    message = str(error).lower()
    return any(marker in message for marker in QUOTA_MARKERS)


class CredentialRotationManager:
    """Tracks the credential pool and selects the active credential."""

    def __init__(
        self,
        secrets: Sequence[str],
        cooldown: timedelta = timedelta(hours=24),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        secrets = [secret for secret in secrets if secret]
        if not secrets:
            raise ConfigurationError("No API credentials configured for the primary provider")

        self.cooldown = cooldown
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._slots = [CredentialSlot(index=i, secret=s) for i, s in enumerate(secrets)]
        self._current = 0
        self._slots[0].state = CredentialState.ACTIVE
        self._last_rotation = self._clock()

        logger.info(f"Credential pool initialized with {len(self._slots)} key(s)")

    @property
    def pool_size(self) -> int:
        return len(self._slots)

    @property
    def active_slot(self) -> CredentialSlot:
        return self._slots[self._current]

    @property
    def slots(self) -> list[CredentialSlot]:
        return list(self._slots)

    def get_active(self) -> str:
        """
        Return the active secret.

        Raises:
            CredentialsExhausted: If every slot is over quota and the cool-down
                has not elapsed yet
        """
        with self._lock:
            return self._usable_slot_locked().secret

    def acquire(self) -> CredentialSlot:
        """Like ``get_active`` but also records the use on the slot."""
        with self._lock:
            slot = self._usable_slot_locked()
            slot.request_count += 1
            slot.last_used = self._clock()
            return slot

    def report_failure(self, error: BaseException, slot_index: Optional[int] = None) -> bool:
        """
        Record a failure on the slot that made the call and rotate.

        Quota failures exclude the slot; other failures leave its state alone
        but still move on so one network blip does not pin a bad key. A
        failure from a slot that is no longer active arrives after a rotation
        already happened, so it is recorded without rotating again.

        Args:
            error: The provider failure
            slot_index: Slot the failed call used; defaults to the error's
                ``slot_index`` tag, then to the active slot

        Returns:
            True if a usable slot is active afterwards, False if every slot is
            excluded
        """
        if slot_index is None:
            slot_index = getattr(error, "slot_index", None)

        with self._lock:
            if slot_index is None:
                slot_index = self._current
            if not 0 <= slot_index < len(self._slots):
                raise IndexError(f"No credential slot {slot_index} (pool size {len(self._slots)})")

            slot = self._slots[slot_index]
            slot.recent_errors.append(str(error)[:200])
            del slot.recent_errors[:-MAX_RECENT_ERRORS]

            quota = is_quota_error(error)
            if quota and slot.state != CredentialState.QUOTA_EXCEEDED:
                slot.state = CredentialState.QUOTA_EXCEEDED
                logger.warning(f"Credential {slot.index} ({slot.masked()}) hit its quota")

            if slot_index != self._current:
                return self._slots[self._current].state != CredentialState.QUOTA_EXCEEDED

            rotated = self._rotate_locked()
            if not rotated:
                logger.warning("All credentials are over quota")
                self._reset_if_cooled_down_locked()
            return rotated

    def check_cooldown(self) -> bool:
        """Reset the pool if every slot is excluded and the cool-down passed."""
        with self._lock:
            if any(s.state != CredentialState.QUOTA_EXCEEDED for s in self._slots):
                return False
            return self._reset_if_cooled_down_locked()

    def reset(self):
        """Manually return every slot to service, starting from slot 0."""
        with self._lock:
            self._reset_locked()
        logger.info("Credential pool reset manually")

    def switch_to(self, index: int):
        """Manually make a slot active, clearing its quota state."""
        with self._lock:
            if index < 0 or index >= len(self._slots):
                raise IndexError(f"No credential slot {index} (pool size {len(self._slots)})")
            self._activate_locked(index)
        logger.info(f"Switched to credential {index}")

    def status(self) -> list[dict]:
        """Per-slot status with masked secrets."""
        with self._lock:
            return [slot.to_dict() for slot in self._slots]

    # -- internals, caller holds self._lock ----------------------------------

    def _usable_slot_locked(self) -> CredentialSlot:
        slot = self._slots[self._current]
        if slot.state != CredentialState.QUOTA_EXCEEDED:
            return slot
        if self._rotate_locked() or self._reset_if_cooled_down_locked():
            return self._slots[self._current]
        raise CredentialsExhausted("All credentials are over quota", status_code=429)

    def _rotate_locked(self) -> bool:
        size = len(self._slots)
        for step in range(1, size + 1):
            candidate = (self._current + step) % size
            if self._slots[candidate].state != CredentialState.QUOTA_EXCEEDED:
                if candidate != self._current:
                    self._activate_locked(candidate)
                    logger.warning(f"Rotated to credential {candidate}")
                return True
        return False

    def _activate_locked(self, index: int):
        previous = self._slots[self._current]
        if previous.state == CredentialState.ACTIVE:
            previous.state = CredentialState.AVAILABLE
        self._current = index
        self._slots[index].state = CredentialState.ACTIVE
        self._last_rotation = self._clock()

    def _reset_if_cooled_down_locked(self) -> bool:
        if self._clock() - self._last_rotation <= self.cooldown:
            return False
        self._reset_locked()
        logger.info("Credential cool-down elapsed, pool reset")
        return True

    def _reset_locked(self):
        for slot in self._slots:
            slot.state = CredentialState.AVAILABLE
        self._current = 0
        self._slots[0].state = CredentialState.ACTIVE
        self._last_rotation = self._clock()
