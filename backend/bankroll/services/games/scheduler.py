import time
from typing import Callable, List, Optional


class ScheduledCall:
    """Handle for a delayed continuation.

    ``fire_at`` is expressed on the owning scheduler's clock (seconds). The
    callback receives the handle itself so the owner can check that it is
    still the continuation it is waiting for.
    """

    def __init__(self, fire_at: float, callback: Callable[['ScheduledCall'], None]):
        self.fire_at = fire_at
        self.callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def done(self) -> bool:
        return self.cancelled or self.fired

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> bool:
        if self.done:
            return False
        self.fired = True
        self.callback(self)
        return True

    def __repr__(self):
        state = 'cancelled' if self.cancelled else 'fired' if self.fired else 'pending'
        return f'<ScheduledCall fire_at={self.fire_at:.3f} {state}>'


class BackgroundScheduler:
    """Runs continuations as Socket.IO background tasks.

    Works with whatever async mode the SocketIO server picked (threading,
    eventlet or gevent) because it only uses ``start_background_task`` and
    ``sleep``.
    """

    def __init__(self, socketio, logger=None):
        self.socketio = socketio
        self.logger = logger

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback) -> ScheduledCall:
        handle = ScheduledCall(self.now() + delay, callback)
        self.socketio.start_background_task(self._worker, handle)
        return handle

    def _worker(self, handle: ScheduledCall) -> None:
        sleep_for = max(0.0, handle.fire_at - self.now())
        if sleep_for:
            self.socketio.sleep(sleep_for)
        if handle.cancelled:
            if self.logger:
                self.logger.debug(f"[timer-abort] {handle!r}")
            return
        try:
            handle.fire()
        except Exception:
            # Background tasks have no caller to propagate to
            if self.logger:
                self.logger.exception(f"[timer-error] {handle!r}")
            raise


class ManualScheduler:
    """Scheduler driven by an explicit clock.

    Used when the app runs with ``TESTING`` so that tests decide when rolls
    fire instead of sleeping through the real cadence.
    """

    def __init__(self, start: float = 0.0):
        self.clock = start
        self._calls: List[ScheduledCall] = []

    def now(self) -> float:
        return self.clock

    def call_later(self, delay: float, callback) -> ScheduledCall:
        handle = ScheduledCall(self.clock + delay, callback)
        self._calls.append(handle)
        return handle

    def pending(self) -> List[ScheduledCall]:
        self._calls = [call for call in self._calls if not call.done]
        return sorted(self._calls, key=lambda call: call.fire_at)

    def run_next(self) -> Optional[ScheduledCall]:
        """Jump the clock to the earliest pending call and fire it."""
        pending = self.pending()
        if not pending:
            return None
        handle = pending[0]
        self.clock = max(self.clock, handle.fire_at)
        handle.fire()
        return handle

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing everything that falls due."""
        target = self.clock + seconds
        fired = 0
        while True:
            pending = self.pending()
            if not pending or pending[0].fire_at > target:
                break
            self.run_next()
            fired += 1
        self.clock = target
        return fired
