"""
Stem playback using python-mpv.

One engine plays one HLS stream (instrumental or vocal) and exposes its
position as a seekable handle for the synchronizer.
"""

import logging
from typing import Optional, Callable, List

import mpv

logger = logging.getLogger(__name__)


class PlaybackEngine:
    """Wrapper around MPV for playing a single stem."""

    def __init__(self, name: str = "stem"):
        self.name = name
        # audio only, URLs are direct HLS playlists
        self.player = mpv.MPV(vo='null', ytdl=False)

        self._on_playing: List[Callable[[], None]] = []
        self.url: Optional[str] = None
        self.is_playing = False

        self.player.observe_property('eof-reached', self._handle_eof)

    def load(self, url: str):
        """Load a stream paused at the start."""
        self.url = url
        self.player.pause = True
        self.player.play(url)
        self.is_playing = False

    def play(self):
        if self.url is None:
            return
        self.player.pause = False
        self.is_playing = True
        for callback in self._on_playing:
            try:
                callback()
            except Exception as e:
                logger.error(f"{self.name}: playing callback {callback} failed: {e}")

    def pause(self):
        self.player.pause = True
        self.is_playing = False

    def stop(self):
        self.player.stop()
        self.is_playing = False
        self.url = None

    def terminate(self):
        self.player.terminate()

    @property
    def position(self) -> float:
        """Current stream time in seconds."""
        return self.player.time_pos or 0.0

    @position.setter
    def position(self, seconds: float):
        if self.url is None:
            return
        try:
            self.player.seek(seconds, reference='absolute')
        except SystemError as e:
            # mpv refuses seeks before the stream is demuxed
            logger.warning(f"{self.name}: seek to {seconds:.2f}s failed: {e}")

    def set_volume(self, level: int):
        self.player.volume = max(0, min(100, level))

    def add_playing_callback(self, callback: Callable[[], None]):
        if callback not in self._on_playing:
            self._on_playing.append(callback)

    def _handle_eof(self, name, value):
        if value:
            logger.debug(f"{self.name}: end of stream")
            self.is_playing = False
