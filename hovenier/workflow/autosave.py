from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from hovenier.core.clock import now_ms
from hovenier.core.errors import PersistenceError
from hovenier.core.logging_config import logger


class SaveState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"
    ERROR = "error"


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay_ms: int, fn: Callable[[], None]) -> ScheduledTask: ...


class ThreadingScheduler:
    """Default scheduler: één threading.Timer per geplande save."""

    def schedule(self, delay_ms: int, fn: Callable[[], None]) -> ScheduledTask:
        timer = threading.Timer(delay_ms / 1000.0, fn)
        timer.daemon = True
        timer.start()
        return timer


class AutoSaveCoordinator:
    """
    Debounced auto-save voor een wizard-draft (voorcalculatie, regels bewerken).

    clean -> dirty -> saving -> clean | error

    - update(): draft wordt dirty, debounce-timer (her)start
    - timer vuurt zonder nieuwe wijzigingen -> commit via persist(draft)
    - hooguit één commit tegelijk; wijzigingen tijdens een commit worden daarna opnieuw ingepland
    - mislukte commit: error gezet, draft blijft dirty, niets wordt weggegooid
    - save_now(): direct flushen (bv. voor een statusovergang); gooit bij falen
    - close(): timer annuleren (navigatie weg / unmount)
    """

    def __init__(
        self,
        persist: Callable[[Dict[str, Any]], None],
        *,
        debounce_ms: int = 2000,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], int] = now_ms,
        initial: Optional[Mapping[str, Any]] = None,
        name: str = "draft",
    ):
        if debounce_ms < 0:
            raise ValueError("debounce_ms must be >= 0")
        self._persist = persist
        self._debounce_ms = debounce_ms
        self._scheduler = scheduler or ThreadingScheduler()
        self._clock = clock
        self._name = name

        self._cond = threading.Condition(threading.Lock())
        self._draft: Dict[str, Any] = dict(initial or {})
        self._version = 0
        self._saved_version = 0
        self._in_flight = False
        self._failed = False
        self._closed = False
        self._timer: Optional[ScheduledTask] = None

        self.last_saved_at: Optional[int] = None
        self.error: Optional[BaseException] = None

    # -----------------------------
    # Observable state
    # -----------------------------

    @property
    def state(self) -> SaveState:
        with self._cond:
            if self._in_flight:
                return SaveState.SAVING
            if self._failed:
                return SaveState.ERROR
            return SaveState.DIRTY if self._version != self._saved_version else SaveState.CLEAN

    @property
    def is_dirty(self) -> bool:
        with self._cond:
            return self._version != self._saved_version

    @property
    def is_saving(self) -> bool:
        with self._cond:
            return self._in_flight

    @property
    def draft(self) -> Dict[str, Any]:
        with self._cond:
            return dict(self._draft)

    # -----------------------------
    # Mutations
    # -----------------------------

    def update(self, changes: Mapping[str, Any]) -> None:
        with self._cond:
            if self._closed:
                raise RuntimeError(f"auto-save for {self._name} is closed")
            self._draft.update(changes)
            self._version += 1
            self._restart_timer_locked()

    def save_now(self) -> None:
        """Flush synchroon. Raises PersistenceError als de commit faalt."""
        with self._cond:
            self._cancel_timer_locked()
        self._flush(raise_errors=True)

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cancel_timer_locked()

    # -----------------------------
    # Internals
    # -----------------------------

    def _restart_timer_locked(self) -> None:
        self._cancel_timer_locked()
        self._timer = self._scheduler.schedule(self._debounce_ms, self._on_timer)

    def _cancel_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        with self._cond:
            self._timer = None
            if self._closed:
                return
        self._flush(raise_errors=False)

    def _flush(self, *, raise_errors: bool) -> None:
        with self._cond:
            while self._in_flight:
                self._cond.wait()
            if self._version == self._saved_version:
                return
            snapshot = dict(self._draft)
            version = self._version
            self._in_flight = True

        try:
            self._persist(snapshot)
        except Exception as e:
            with self._cond:
                self._in_flight = False
                self._failed = True
                self.error = e
                self._cond.notify_all()
            logger.warning("autosave_failed", draft=self._name, version=version, error=str(e))
            if raise_errors:
                if isinstance(e, PersistenceError):
                    raise
                raise PersistenceError(
                    f"Opslaan van {self._name} mislukt", code="AUTOSAVE_FAILED", meta={"version": version}
                ) from e
            return

        with self._cond:
            self._in_flight = False
            self._failed = False
            self.error = None
            self._saved_version = version
            self.last_saved_at = self._clock()
            requeue = self._version != version and not self._closed
            if requeue:
                self._restart_timer_locked()
            self._cond.notify_all()

        logger.info("autosave_committed", draft=self._name, version=version, requeued=requeue)
