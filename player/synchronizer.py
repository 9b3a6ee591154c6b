"""
Seek synchronization between the instrumental and vocal stems.

When the listener drags either waveform, both playback handles and both
waveform cursors have to land on the same time. Drags fire many seek events
per second, so requests are debounced on the trailing edge and only the
latest target is applied.
"""

import threading
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import partial
from typing import Callable, Optional, Protocol, Union

from shared.constants import SEEK_DEBOUNCE_SEC, SEEK_PRECISION, SYNC_THRESHOLD_SEC


class PlaybackHandle(Protocol):
    """A seekable media source exposing its position in seconds."""
    position: float


class WaveformCursor(Protocol):
    def seek_to(self, fraction: float) -> None:
        ...


@dataclass(frozen=True)
class NoVocal:
    """The track has no vocal stem."""


@dataclass(frozen=True)
class HasVocal:
    handle: PlaybackHandle
    cursor: WaveformCursor


VocalStem = Union[NoVocal, HasVocal]


def _round_half_up(value: float, places: int) -> float:
    """Round exact ties away from zero, as the web player's toFixed does."""
    return float(Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


def vocal_stem(handle: Optional[PlaybackHandle] = None,
               cursor: Optional[WaveformCursor] = None) -> VocalStem:
    """Pair an optional vocal handle and cursor; either one missing means no vocal stem."""
    if handle is not None and cursor is not None:
        return HasVocal(handle, cursor)
    return NoVocal()


class PlaybackSynchronizer:
    """
    Keeps the stems of one loaded track on the same position while seeking.

    One instance belongs to one track. The owner calls `cancel()` before
    replacing it; a pending seek is otherwise still applied.
    """

    def __init__(self, instrumental_handle: PlaybackHandle, instrumental_cursor: WaveformCursor,
                 instrumental_only: bool, total_duration: float,
                 vocal: VocalStem = NoVocal(),
                 debounce_sec: float = SEEK_DEBOUNCE_SEC,
                 threshold_sec: float = SYNC_THRESHOLD_SEC,
                 timer_factory: TimerFactory = threading.Timer):
        if total_duration <= 0:
            raise ValueError(f"total_duration must be positive, got {total_duration}")

        self.instrumental_handle = instrumental_handle
        self.instrumental_cursor = instrumental_cursor
        self.instrumental_only = instrumental_only
        self.total_duration = float(total_duration)
        self.vocal = vocal
        self.debounce_sec = debounce_sec
        self.threshold_sec = threshold_sec
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._pending: Optional[threading.Timer] = None
        self._generation = 0
        self._target: Optional[float] = None
        self._seeking = False

    @property
    def is_seeking(self) -> bool:
        return self._seeking

    @property
    def pending_target(self) -> Optional[float]:
        return self._target

    def request_seek(self, target_time: float) -> None:
        """
        Schedule a seek to `target_time` seconds.

        Supersedes any seek still waiting for its debounce delay.
        """
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            self._generation += 1
            self._target = float(target_time)
            self._seeking = True
            timer = self._timer_factory(self.debounce_sec, partial(self._flush, self._generation))
            timer.daemon = True
            self._pending = timer
        timer.start()

    def cancel(self) -> None:
        """Drop any pending seek without applying it."""
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            self._generation += 1
            self._pending = None
            self._target = None
            self._seeking = False

    def _flush(self, generation: int) -> None:
        with self._lock:
            # superseded or cancelled after the timer already fired
            if generation != self._generation or self._target is None:
                return
            target = self._target
            self._pending = None

        self._apply(target)

        with self._lock:
            if generation == self._generation:
                self._seeking = False
                self._target = None

    def _apply(self, target_time: float) -> None:
        clamped = min(max(target_time, 0.0), self.total_duration)
        normalized = _round_half_up(clamped, SEEK_PRECISION)
        fraction = normalized / self.total_duration

        self._sync_handle(self.instrumental_handle, normalized)
        self.instrumental_cursor.seek_to(fraction)

        if not self.instrumental_only and isinstance(self.vocal, HasVocal):
            self._sync_handle(self.vocal.handle, normalized)
            self.vocal.cursor.seek_to(fraction)

    def _sync_handle(self, handle: Optional[PlaybackHandle], target_time: float) -> None:
        if handle is None:
            return
        if abs(handle.position - target_time) > self.threshold_sec:
            handle.position = target_time
