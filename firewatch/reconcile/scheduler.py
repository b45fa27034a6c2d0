"""
Reconciliation Scheduler

Decides when the clustering pipeline re-runs. Two producers feed it: data
refresh ticks, which schedule a run immediately, and viewport changes, which
are debounced so only the last event of a burst schedules a run. A single
worker thread executes runs one at a time; triggers that arrive while a run is
in flight collapse into one pending run.

States: idle -> scheduled -> running -> idle. While a run is in flight with
another one pending, the reported state is "scheduled".
"""

import threading
from typing import Any, Callable, Optional

IDLE = "idle"
SCHEDULED = "scheduled"
RUNNING = "running"


class ReconciliationScheduler:
    """Coalescing, debounced trigger for a single-flight pipeline."""

    def __init__(
        self,
        run: Callable[[], Any],
        publish: Optional[Callable[[Any], None]] = None,
        debounce_s: float = 0.3,
        timer_factory=threading.Timer,
        verbose: bool = False,
    ):
        """
        Args:
            run: Pipeline callable; reads the freshest inputs when called
            publish: Receives each run's result unless the scheduler was
                stopped while the run was in flight
            debounce_s: Quiet window for viewport changes, in seconds
            timer_factory: threading.Timer-compatible factory
            verbose: Print a line per run
        """
        self._run = run
        self._publish = publish
        self.debounce_s = debounce_s
        self._timer_factory = timer_factory
        self.verbose = verbose

        self._cond = threading.Condition()
        self._pending = False
        self._running = False
        self._stopped = False
        self._timer = None
        self._debounce_token = 0
        self._worker: Optional[threading.Thread] = None

        self.run_count = 0
        self.discarded_count = 0
        self.error_count = 0

    @property
    def state(self) -> str:
        with self._cond:
            if self._pending:
                return SCHEDULED
            return RUNNING if self._running else IDLE

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self):
        with self._cond:
            if self._stopped:
                raise RuntimeError("Scheduler has been stopped and cannot be restarted")
            if self._worker is not None:
                return
            self._worker = threading.Thread(
                target=self._work, name="firewatch-reconcile", daemon=True
            )
            self._worker.start()

    def stop(self, timeout: Optional[float] = 5.0):
        """Cancel the debounce timer, discard in-flight results and join the worker."""
        with self._cond:
            self._stopped = True
            self._pending = False
            self._cancel_timer()
            self._cond.notify_all()
            worker = self._worker

        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)

    def notify_data_refresh(self) -> bool:
        """Schedule a run now. Returns False once stopped."""
        return self._request()

    def notify_viewport_change(self) -> bool:
        """Restart the quiet window; the run is scheduled when it elapses."""
        with self._cond:
            if self._stopped:
                return False
            self._cancel_timer()
            self._debounce_token += 1
            timer = self._timer_factory(
                self.debounce_s, self._on_quiet, args=(self._debounce_token,)
            )
            timer.daemon = True
            self._timer = timer
            timer.start()
            return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is pending, debouncing or running."""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._stopped
                or (not self._pending and not self._running and self._timer is None),
                timeout,
            )

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_quiet(self, token: int):
        with self._cond:
            # a timer that fired while being replaced must not schedule
            if token != self._debounce_token or self._stopped:
                return
            self._timer = None
            self._pending = True
            self._cond.notify_all()

    def _request(self) -> bool:
        with self._cond:
            if self._stopped:
                return False
            self._pending = True
            self._cond.notify_all()
            return True

    def _work(self):
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending or self._stopped)
                if self._stopped:
                    return
                self._pending = False
                self._running = True
                self._cond.notify_all()

            result, ok = None, False
            try:
                result = self._run()
                ok = True
            except Exception as e:
                self.error_count += 1
                print(f"[ERROR] Cluster recompute failed: {e}")

            with self._cond:
                self._running = False
                self.run_count += 1
                if self._stopped:
                    self.discarded_count += 1
                elif ok and self._publish is not None:
                    try:
                        self._publish(result)
                    except Exception as e:
                        print(f"[ERROR] Publishing cluster update failed: {e}")
                if self.verbose:
                    print(f"   Recompute {self.run_count} finished ({'ok' if ok else 'failed'})")
                self._cond.notify_all()
