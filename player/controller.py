"""
Player controller.

Owns the instrumental and vocal playback engines and their waveforms for the
currently loaded track, and routes seek gestures through a
PlaybackSynchronizer.
"""

import logging
from typing import Callable, Optional

from shared.constants import HLS_PLAYLIST_NAME
from shared.models import TrackResponse
from player.preferences import Preferences
from player.synchronizer import PlaybackSynchronizer, vocal_stem
from player.waveform import Waveform

logger = logging.getLogger(__name__)

INSTRUMENTAL = "instrumental"
VOCAL = "vocal"


def default_engine_factory(name: str):
    from player.engine import PlaybackEngine
    return PlaybackEngine(name)


def stream_url(static_url: str, folder_path: str) -> str:
    return f"{static_url.rstrip('/')}/{folder_path.strip('/')}/{HLS_PLAYLIST_NAME}"


def format_duration(seconds: float) -> str:
    total = int(round(seconds))
    return f"{total // 60}:{total % 60:02d}"


class PlayerController:
    """
    Loads tracks into a pair of stem players.

    Engines are created once and reused across tracks; the synchronizer and
    waveforms are rebuilt for every track.
    """

    def __init__(self, static_url: str, preferences: Optional[Preferences] = None,
                 engine_factory: Callable = default_engine_factory,
                 synchronizer_factory: Callable = PlaybackSynchronizer):
        self.static_url = static_url
        self.preferences = preferences or Preferences()
        self._synchronizer_factory = synchronizer_factory

        self.instrumental_engine = engine_factory(INSTRUMENTAL)
        self.vocal_engine = engine_factory(VOCAL)
        self.instrumental_engine.add_playing_callback(self._on_instrumental_playing)

        self.track: Optional[TrackResponse] = None
        self.duration = 0.0
        self.instrumental_waveform: Optional[Waveform] = None
        self.vocal_waveform: Optional[Waveform] = None
        self.synchronizer: Optional[PlaybackSynchronizer] = None

        self.instrumental_engine.set_volume(self.preferences.volume(INSTRUMENTAL))
        self.vocal_engine.set_volume(self.preferences.volume(VOCAL))

    @property
    def has_vocal(self) -> bool:
        return self.track is not None and self.track.has_vocal

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration)

    def load_track(self, track: TrackResponse) -> PlaybackSynchronizer:
        """Replace the current track; the previous synchronizer is cancelled first."""
        if self.synchronizer is not None:
            self.synchronizer.cancel()
            self.synchronizer = None
        self.stop()

        self.track = track
        self.duration = float(track.info.length)
        logger.info(f"Loading '{track.info.title}' by {track.info.artist} ({self.duration_label})")

        self.instrumental_waveform = Waveform(track.info.instrumental_waveform, self.duration, INSTRUMENTAL)
        self.instrumental_engine.load(stream_url(self.static_url, track.saved_instrumental_folder_path))

        self.vocal_waveform = None
        if track.has_vocal:
            # no peaks still needs a cursor, the vocal stream is seeked with it
            self.vocal_waveform = Waveform(track.info.vocal_waveform or [], self.duration, VOCAL)
            self.vocal_engine.load(stream_url(self.static_url, track.saved_vocal_folder_path))

        self.synchronizer = self._synchronizer_factory(
            self.instrumental_engine,
            self.instrumental_waveform,
            track.info.instrumental,
            self.duration,
            vocal=vocal_stem(self.vocal_engine if track.has_vocal else None, self.vocal_waveform),
        )

        self.instrumental_waveform.on_seeking(self.synchronizer.request_seek)
        if self.vocal_waveform is not None:
            self.vocal_waveform.on_seeking(self.synchronizer.request_seek)
        return self.synchronizer

    def play(self):
        if self.track is None:
            return
        if self.has_vocal:
            self.vocal_engine.play()
        self.instrumental_engine.play()

    def pause(self):
        self.instrumental_engine.pause()
        self.vocal_engine.pause()
        for waveform in (self.instrumental_waveform, self.vocal_waveform):
            if waveform is not None:
                waveform.pause()

    def toggle(self):
        if self.instrumental_engine.is_playing:
            self.pause()
        else:
            self.play()

    def stop(self):
        self.instrumental_engine.stop()
        self.vocal_engine.stop()
        for waveform in (self.instrumental_waveform, self.vocal_waveform):
            if waveform is not None:
                waveform.pause()

    def seek(self, seconds: float):
        if self.synchronizer is not None:
            self.synchronizer.request_seek(seconds)

    def tick(self):
        """Move both waveform cursors to the instrumental position."""
        if self.instrumental_waveform is None:
            return
        position = self.instrumental_engine.position
        self.instrumental_waveform.advance(position)
        if self.vocal_waveform is not None:
            self.vocal_waveform.advance(position)

    def set_volume(self, stem: str, level: int):
        engine = self.vocal_engine if stem == VOCAL else self.instrumental_engine
        engine.set_volume(level)
        self.preferences.set_volume(stem, level)

    def close(self):
        """Cancel pending seeks and release both engines."""
        if self.synchronizer is not None:
            self.synchronizer.cancel()
        self.stop()
        self.instrumental_engine.terminate()
        self.vocal_engine.terminate()

    def anonymous_id(self) -> str:
        return self.preferences.anonymous_id()

    def _on_instrumental_playing(self):
        for waveform in (self.instrumental_waveform, self.vocal_waveform):
            if waveform is not None:
                waveform.play()
