"""
Waveform display for one stem: the peak data, a normalized cursor, and the
`seeking` event raised when the listener drags the cursor.
"""

from typing import Callable, List, Optional

BAR_LEVELS = " ▁▂▃▄▅▆▇█"
CURSOR_CHAR = "│"


class Waveform:
    def __init__(self, peaks: Optional[List[float]], duration: float, name: str = "stem"):
        self.name = name
        self.peaks = list(peaks or [])
        self.duration = duration
        self.cursor = 0.0
        self.is_playing = False
        self._seeking_listeners: List[Callable[[float], None]] = []

    def on_seeking(self, callback: Callable[[float], None]) -> None:
        """Register a listener receiving the dragged-to time in seconds."""
        self._seeking_listeners.append(callback)

    def seek_to(self, fraction: float) -> None:
        """Move the cursor; does not notify seeking listeners."""
        self.cursor = min(max(fraction, 0.0), 1.0)

    def drag_to(self, seconds: float) -> None:
        """A user gesture: move the cursor and notify listeners."""
        if self.duration > 0:
            self.seek_to(seconds / self.duration)
        for listener in list(self._seeking_listeners):
            listener(seconds)

    @property
    def current_time(self) -> float:
        return self.cursor * self.duration

    def play(self) -> None:
        self.is_playing = True

    def pause(self) -> None:
        self.is_playing = False

    def advance(self, seconds: float) -> None:
        """Follow playback without raising a seek."""
        if self.duration > 0:
            self.seek_to(seconds / self.duration)

    def render(self, width: int = 60) -> str:
        """
        Downsample the peaks to `width` bar characters and mark the cursor.
        """
        if width <= 0:
            return ""
        if not self.peaks:
            bars = [BAR_LEVELS[0]] * width
        else:
            top = max(abs(p) for p in self.peaks) or 1.0
            bars = []
            for column in range(width):
                start = column * len(self.peaks) // width
                end = max((column + 1) * len(self.peaks) // width, start + 1)
                level = max(abs(p) for p in self.peaks[start:end]) / top
                bars.append(BAR_LEVELS[round(level * (len(BAR_LEVELS) - 1))])

        cursor_column = min(int(self.cursor * width), width - 1)
        bars[cursor_column] = CURSOR_CHAR
        return "".join(bars)
