import pytest

from player.controller import PlayerController, format_duration, stream_url
from player.preferences import Preferences
from player.synchronizer import HasVocal, NoVocal, PlaybackSynchronizer
from player.waveform import CURSOR_CHAR, Waveform
from shared.models import TrackInfo, TrackResponse

from test_synchronizer import TimerFactory


class FakeEngine:
    def __init__(self, name):
        self.name = name
        self.position = 0.0
        self.url = None
        self.volume = None
        self.is_playing = False
        self.playing_callbacks = []
        self.terminated = False

    def load(self, url):
        self.url = url

    def play(self):
        self.is_playing = True
        for callback in self.playing_callbacks:
            callback()

    def pause(self):
        self.is_playing = False

    def stop(self):
        self.is_playing = False
        self.url = None

    def set_volume(self, level):
        self.volume = level

    def terminate(self):
        self.terminated = True

    def add_playing_callback(self, callback):
        self.playing_callbacks.append(callback)


def track_response(instrumental=False, length=240.0, track_id="t1"):
    return TrackResponse(
        id=track_id,
        cover="",
        info=TrackInfo(
            title="Lights", artist="Cansu", album="Night Drive", genre="House",
            length=length, tempo=124.0, instrumental=instrumental, key="Am",
            instrumental_waveform=[0.1, 0.5, 0.9],
            vocal_waveform=None if instrumental else [0.2, 0.4, 0.2],
        ),
        saved_album_name="Night Drive",
        cover_extension="",
        saved_vocal_folder_path="" if instrumental else "Night Drive/Lights/vocal",
        saved_instrumental_folder_path="Night Drive/Lights/instrumental",
    )


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def controller(tmp_path, timers):
    def synchronizer_factory(*args, **kwargs):
        return PlaybackSynchronizer(*args, timer_factory=timers, **kwargs)

    return PlayerController(
        "https://static.example/",
        preferences=Preferences(tmp_path / "prefs.json"),
        engine_factory=FakeEngine,
        synchronizer_factory=synchronizer_factory,
    )


def test_stream_url_and_duration_label():
    assert stream_url("https://static.example/", "/Album/Song/vocal/") == \
        "https://static.example/Album/Song/vocal/playlist.m3u8"
    assert format_duration(245.4) == "4:05"
    assert format_duration(59.6) == "1:00"


def test_load_track_with_vocal_stem(controller):
    sync = controller.load_track(track_response())

    assert controller.instrumental_engine.url == "https://static.example/Night Drive/Lights/instrumental/playlist.m3u8"
    assert controller.vocal_engine.url == "https://static.example/Night Drive/Lights/vocal/playlist.m3u8"
    assert controller.vocal_waveform is not None
    assert isinstance(sync.vocal, HasVocal)
    assert sync.total_duration == 240.0
    assert controller.duration_label == "4:00"


def test_load_instrumental_track_skips_vocal(controller):
    sync = controller.load_track(track_response(instrumental=True))

    assert controller.vocal_engine.url is None
    assert controller.vocal_waveform is None
    assert sync.vocal == NoVocal()
    assert sync.instrumental_only


def test_dragging_either_waveform_syncs_both_stems(controller, timers):
    controller.load_track(track_response())
    controller.instrumental_engine.position = 50.0
    controller.vocal_engine.position = 50.0

    controller.vocal_waveform.drag_to(80.0)
    timers.last.fire()

    assert controller.instrumental_engine.position == 80.0
    assert controller.vocal_engine.position == 80.0
    assert controller.instrumental_waveform.cursor == pytest.approx(80.0 / 240)
    assert controller.vocal_waveform.cursor == pytest.approx(80.0 / 240)


def test_loading_new_track_cancels_pending_seek(controller, timers):
    controller.load_track(track_response())
    controller.seek(120.0)
    pending = timers.last

    controller.load_track(track_response(track_id="t2"))
    pending.function()

    assert pending.cancelled
    assert controller.instrumental_engine.position == 0.0


def test_play_mirrors_waveforms(controller):
    controller.load_track(track_response())
    controller.play()

    assert controller.instrumental_engine.is_playing
    assert controller.vocal_engine.is_playing
    assert controller.instrumental_waveform.is_playing
    assert controller.vocal_waveform.is_playing

    controller.toggle()
    assert not controller.instrumental_engine.is_playing
    assert not controller.vocal_waveform.is_playing


def test_tick_follows_instrumental_position(controller):
    controller.load_track(track_response())
    controller.instrumental_engine.position = 60.0
    controller.tick()
    assert controller.vocal_waveform.cursor == pytest.approx(0.25)


def test_volume_is_persisted(controller, tmp_path):
    controller.set_volume("vocal", 140)
    assert controller.vocal_engine.volume == 140
    assert Preferences(tmp_path / "prefs.json").volume("vocal") == 100

    controller.set_volume("vocal", 35)
    reloaded = Preferences(tmp_path / "prefs.json")
    assert reloaded.volume("vocal") == 35
    assert reloaded.volume("instrumental") == 100


def test_anonymous_id_is_stable(tmp_path):
    prefs = Preferences(tmp_path / "prefs.json")
    anon_id = prefs.anonymous_id()

    assert anon_id.startswith("user_")
    assert len(anon_id) == len("user_") + 7
    assert Preferences(tmp_path / "prefs.json").anonymous_id() == anon_id


def test_waveform_drag_notifies_and_seek_to_does_not():
    waveform = Waveform([0.0, 1.0], duration=100.0)
    heard = []
    waveform.on_seeking(heard.append)

    waveform.seek_to(0.5)
    waveform.drag_to(25.0)

    assert heard == [25.0]
    assert waveform.cursor == 0.25
    assert waveform.current_time == 25.0


def test_waveform_cursor_is_clamped():
    waveform = Waveform([], duration=100.0)
    waveform.seek_to(1.5)
    assert waveform.cursor == 1.0
    waveform.seek_to(-0.2)
    assert waveform.cursor == 0.0


def test_waveform_render_marks_cursor():
    waveform = Waveform([0.0, 0.5, 1.0, 0.5], duration=4.0)
    waveform.seek_to(0.5)

    rendered = waveform.render(4)
    assert len(rendered) == 4
    assert rendered[2] == CURSOR_CHAR
    assert rendered[0] == " "
    assert rendered[3] == "▄"
    assert Waveform(None, 1.0).render(3) == CURSOR_CHAR + "  "


def test_close_cancels_seek_and_releases_engines(controller, timers):
    controller.load_track(track_response())
    controller.seek(30.0)
    controller.close()
    timers.last.function()

    assert controller.instrumental_engine.position == 0.0
    assert controller.instrumental_engine.terminated
    assert controller.vocal_engine.terminated


def test_vocal_track_without_peaks_still_syncs_vocal_stream(controller, timers):
    track = track_response()
    track.info.vocal_waveform = None
    sync = controller.load_track(track)

    assert isinstance(sync.vocal, HasVocal)
    assert controller.vocal_waveform.render(3) == CURSOR_CHAR + "  "

    controller.play()
    controller.seek(120.0)
    timers.last.fire()

    assert controller.instrumental_engine.position == 120.0
    assert controller.vocal_engine.position == 120.0
    assert controller.vocal_waveform.cursor == 0.5
