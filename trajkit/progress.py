"""
Progress reporting for long-running analyses.

A :class:`ProgressCounter` combines a counter (how far along are we), a
trigger (is it time to say so) and any number of attached watchers (how to
say it)::

    counter = ProgressCounter(PercentTrigger(0.1), EstimatingCounter(total))
    counter.attach(LoggingProgressWatcher())
    counter.start()
    for item in work:
        ...
        counter.update()
    counter.finish()

Watchers only observe; nothing here feeds back into the computation.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod

from tqdm import tqdm

logger = logging.getLogger(__name__)


class EstimatingCounter:
    """
    Counts completed work items against a known total.

    Args:
        total: Expected number of items.
    """

    def __init__(self, total: int) -> None:
        if total < 0:
            raise ValueError(f"total must be non-negative, got {total}")
        self.total = total
        self.count = 0
        self._start: float | None = None

    def start(self) -> None:
        self.count = 0
        self._start = time.perf_counter()

    def increment(self, n: int = 1) -> None:
        self.count += n

    @property
    def elapsed(self) -> float:
        """Seconds since :meth:`start`."""
        if self._start is None:
            return 0.0
        return time.perf_counter() - self._start

    @property
    def fraction_complete(self) -> float:
        """Completed share of the work, from 0 to 1."""
        if self.total == 0:
            return 1.0
        return min(self.count / self.total, 1.0)

    @property
    def time_remaining(self) -> float:
        """Estimated seconds left, extrapolated from the rate so far."""
        fraction = self.fraction_complete
        if fraction <= 0.0:
            return float("inf")
        return self.elapsed * (1.0 - fraction) / fraction


class Trigger(ABC):
    """Decides when a counter update is worth reporting."""

    @abstractmethod
    def __call__(self, counter: EstimatingCounter) -> bool:
        ...

    def reset(self) -> None:
        pass


class PercentTrigger(Trigger):
    """Fires each time another ``fraction`` of the work has completed."""

    def __init__(self, fraction: float = 0.1) -> None:
        if not 0.0 < fraction <= 1.0:
            raise ValueError(f"fraction must be in (0, 1], got {fraction}")
        self.fraction = fraction
        self._last = 0.0

    def __call__(self, counter: EstimatingCounter) -> bool:
        done = counter.fraction_complete
        if done - self._last >= self.fraction - 1e-12:
            self._last = done
            return True
        return False

    def reset(self) -> None:
        self._last = 0.0


class TimeTrigger(Trigger):
    """Fires when at least ``interval`` seconds passed since the last report."""

    def __init__(self, interval: float = 10.0) -> None:
        self.interval = interval
        self._last = 0.0

    def __call__(self, counter: EstimatingCounter) -> bool:
        if counter.elapsed - self._last >= self.interval:
            self._last = counter.elapsed
            return True
        return False

    def reset(self) -> None:
        self._last = 0.0


class AlwaysTrigger(Trigger):
    """Fires on every update."""

    def __call__(self, counter: EstimatingCounter) -> bool:
        return True


class ProgressWatcher(ABC):
    """Receives progress notifications from a ProgressCounter."""

    def start(self, counter: EstimatingCounter) -> None:
        """Called once before work begins."""
        pass

    @abstractmethod
    def update(self, counter: EstimatingCounter) -> None:
        """Called whenever the trigger fires."""
        ...

    def finish(self, counter: EstimatingCounter) -> None:
        """Called once after work ends."""
        pass


class LoggingProgressWatcher(ProgressWatcher):
    """Logs percent complete, elapsed time and estimated time remaining."""

    def __init__(self, level: int = logging.INFO, log: logging.Logger | None = None) -> None:
        self.level = level
        self._log = log or logger

    def start(self, counter: EstimatingCounter) -> None:
        self._log.log(self.level, "Started %d work items", counter.total)

    def update(self, counter: EstimatingCounter) -> None:
        self._log.log(
            self.level,
            "%5.1f%% complete (%s elapsed, ~%s remaining)",
            100.0 * counter.fraction_complete,
            format_duration(counter.elapsed),
            format_duration(counter.time_remaining),
        )

    def finish(self, counter: EstimatingCounter) -> None:
        self._log.log(
            self.level,
            "Finished %d work items in %s",
            counter.count,
            format_duration(counter.elapsed),
        )


class TqdmProgressWatcher(ProgressWatcher):
    """Interactive progress bar on stderr."""

    def __init__(self, description: str = "", **tqdm_kwargs) -> None:
        self.description = description
        self._tqdm_kwargs = tqdm_kwargs
        self._bar: tqdm | None = None
        self._shown = 0

    def start(self, counter: EstimatingCounter) -> None:
        self._bar = tqdm(total=counter.total, desc=self.description, **self._tqdm_kwargs)
        self._shown = 0

    def update(self, counter: EstimatingCounter) -> None:
        if self._bar is not None:
            self._bar.update(counter.count - self._shown)
            self._shown = counter.count

    def finish(self, counter: EstimatingCounter) -> None:
        if self._bar is not None:
            self.update(counter)
            self._bar.close()
            self._bar = None


class ProgressCounter:
    """
    Counter with attached watchers, notified when the trigger fires.

    :meth:`update` may be called from several threads at once.

    Args:
        trigger: Decides when watchers hear about an update.
        counter: Tracks completed versus total work.
    """

    def __init__(self, trigger: Trigger, counter: EstimatingCounter) -> None:
        self.trigger = trigger
        self.counter = counter
        self._watchers: list[ProgressWatcher] = []
        self._lock = threading.Lock()

    def attach(self, watcher: ProgressWatcher) -> ProgressCounter:
        self._watchers.append(watcher)
        return self

    def detach(self, watcher: ProgressWatcher) -> None:
        self._watchers.remove(watcher)

    def start(self) -> None:
        self.counter.start()
        self.trigger.reset()
        for watcher in self._watchers:
            watcher.start(self.counter)

    def update(self, n: int = 1) -> None:
        with self._lock:
            self.counter.increment(n)
            if self.trigger(self.counter):
                for watcher in self._watchers:
                    watcher.update(self.counter)

    def finish(self) -> None:
        for watcher in self._watchers:
            watcher.finish(self.counter)


def make_progress(total: int, verbosity: int = 1, interactive: bool = False) -> ProgressCounter | None:
    """
    Build the standard progress counter for ``total`` work items.

    Returns None (no reporting) when ``verbosity`` is 0.
    """
    if verbosity <= 0:
        return None
    if interactive:
        progress = ProgressCounter(AlwaysTrigger(), EstimatingCounter(total))
        progress.attach(TqdmProgressWatcher(description="pairs", leave=False))
    else:
        progress = ProgressCounter(PercentTrigger(0.1), EstimatingCounter(total))
        progress.attach(LoggingProgressWatcher())
    return progress


def format_duration(seconds: float) -> str:
    """Render seconds as e.g. ``42.0s``, ``3m07s`` or ``2h05m``."""
    if seconds == float("inf"):
        return "?"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    if minutes < 60:
        return f"{minutes}m{secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes:02d}m"
