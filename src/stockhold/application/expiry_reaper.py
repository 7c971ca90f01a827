"""ExpiryReaper — periodic sweep that expires lapsed holds.

Stateless: each sweep reads ``expires_at`` from the hold store and asks
HoldManager to expire whatever is due. Any number of replicas may sweep
at once; the guarded transition in HoldManager makes sure a hold is only
released once, and the loser of a race just counts it as skipped.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import structlog

from stockhold.domain.exceptions import HoldAlreadyFinalized
from stockhold.domain.model.hold import HoldStatus, utc_now
from stockhold.domain.repository.hold_repository import HoldRepository
from stockhold.domain.service.hold_manager import HoldManager

logger = structlog.get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 60.0
DEFAULT_BATCH_SIZE = 100


@dataclass(frozen=True)
class SweepResult:
    expired: int
    skipped: int


class ExpiryReaper:

    def __init__(
        self,
        hold_manager: HoldManager,
        holds: HoldRepository,
        clock: Callable[[], datetime] = utc_now,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._hold_manager = hold_manager
        self._holds = holds
        self._clock = clock
        self._interval = interval
        self._batch_size = batch_size

    def sweep(self) -> SweepResult:
        """Expire one batch of lapsed holds."""
        expired = skipped = 0
        for local_order_id in self._holds.find_lapsed(self._clock(), self._batch_size):
            try:
                self._hold_manager.finalize(local_order_id, HoldStatus.EXPIRED)
                expired += 1
            except HoldAlreadyFinalized:
                skipped += 1

        if expired or skipped:
            logger.info("expiry_sweep", expired=expired, skipped=skipped)
        return SweepResult(expired=expired, skipped=skipped)

    def run(self, stop: threading.Event) -> None:
        """Sweep every ``interval`` seconds until ``stop`` is set."""
        logger.info("expiry_reaper_started", interval=self._interval)
        while not stop.is_set():
            try:
                self.sweep()
            except Exception:
                logger.exception("expiry_sweep_failed")
            stop.wait(self._interval)
        logger.info("expiry_reaper_stopped")

    def start(self) -> tuple[threading.Thread, threading.Event]:
        """Run the reaper on a daemon thread; set the event to stop it."""
        stop = threading.Event()
        thread = threading.Thread(
            target=self.run, args=(stop,), name="expiry-reaper", daemon=True
        )
        thread.start()
        return thread, stop
