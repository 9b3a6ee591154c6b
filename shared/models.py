"""
Data models for albums, stemmed tracks, listening history and API payloads.

This module defines the core data structures shared by the API server,
the upload tool and the player.
"""

from dataclasses import dataclass, asdict, field, fields
from typing import List, Dict, Optional, Any
from datetime import datetime, timezone
import uuid

from shared.exceptions import BadRequestError


def _filter_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    field_names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in field_names}


@dataclass
class Album:
    """An album; covers live in object storage under `{name}/cover.jpg`."""
    id: str
    name: str
    cover_extension: str = ""

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Album':
        return cls(**_filter_fields(cls, data))


@dataclass
class Track:
    """
    A track split into an instrumental stem and an optional vocal stem.

    Attributes:
        id: Unique identifier (UUID)
        album_id: Owning album
        info: Raw tag metadata (Title, Artist, Album, Genre, Track, ...)
        key: Musical key
        tempo: Tempo in BPM
        instrumental: True when the track has no vocal stem
        instrumental_folder_path: Storage folder of the instrumental HLS stream
        vocal_folder_path: Storage folder of the vocal HLS stream
        instrumental_waveform: Peaks of the instrumental stem
        vocal_waveform: Peaks of the vocal stem
        total_duration: Length in seconds
    """
    id: str
    album_id: str
    info: Dict[str, Any]
    key: str
    tempo: float
    instrumental: bool
    instrumental_folder_path: str
    total_duration: float
    vocal_folder_path: Optional[str] = None
    instrumental_waveform: List[float] = field(default_factory=list)
    vocal_waveform: Optional[List[float]] = None

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())

    @property
    def title(self) -> Optional[str]:
        return self.info.get("Title")

    @property
    def artist(self) -> Optional[str]:
        return self.info.get("Artist")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Track':
        """Create Track from dictionary, filtering unknown keys."""
        return cls(**_filter_fields(cls, data))


@dataclass
class ListeningHistory:
    track_id: str
    anon_id: str
    listened_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass
class TrackUpload:
    """
    One item of the admin bulk-upload body.

    Field names follow the JSON the upload tool sends (camelCase where the
    wire format uses it).
    """
    metadata: Dict[str, Any]
    key: str
    tempo: float
    length: float
    instrumental_folder_path: str
    instrumental: bool = False
    vocal_folder_path: Optional[str] = None
    waveform: List[float] = field(default_factory=list)
    vocal_waveform: Optional[List[float]] = None

    @property
    def album_name(self) -> Optional[str]:
        return self.metadata.get("Album")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata,
            "key": self.key,
            "tempo": self.tempo,
            "length": self.length,
            "instrumentalFolderPath": self.instrumental_folder_path,
            "instrumental": self.instrumental,
            "vocalFolderPath": self.vocal_folder_path,
            "waveform": self.waveform,
            "vocalWaveform": self.vocal_waveform,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrackUpload':
        """
        Parse an upload item.

        Raises:
            BadRequestError: if the item is malformed or has no album name
        """
        if not isinstance(data, dict):
            raise BadRequestError("Upload item must be an object")
        metadata = data.get("metadata")
        if not isinstance(metadata, dict):
            raise BadRequestError("Upload item is missing metadata")
        if not metadata.get("Album"):
            raise BadRequestError(f"Album name not found for metadata {metadata}")
        if not data.get("instrumentalFolderPath"):
            raise BadRequestError("Upload item is missing instrumentalFolderPath")
        try:
            tempo = float(data.get("tempo", 0))
            length = float(data.get("length", 0))
        except (TypeError, ValueError):
            raise BadRequestError("tempo and length must be numbers")
        return cls(
            metadata=metadata,
            key=str(data.get("key", "")),
            tempo=tempo,
            length=length,
            instrumental_folder_path=data["instrumentalFolderPath"],
            instrumental=bool(data.get("instrumental", False)),
            vocal_folder_path=data.get("vocalFolderPath"),
            waveform=list(data.get("waveform") or []),
            vocal_waveform=data.get("vocalWaveform"),
        )

    def to_track(self, album_id: str) -> Track:
        return Track(
            id=Track.generate_id(),
            album_id=album_id,
            info=self.metadata,
            key=self.key,
            tempo=self.tempo,
            instrumental=self.instrumental,
            instrumental_folder_path=self.instrumental_folder_path,
            vocal_folder_path=self.vocal_folder_path,
            instrumental_waveform=self.waveform,
            vocal_waveform=self.vocal_waveform,
            total_duration=self.length,
        )


@dataclass
class TrackInfo:
    length: float
    instrumental_waveform: List[float]
    tempo: float
    instrumental: bool
    key: str
    vocal_waveform: Optional[List[float]] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None


@dataclass
class TrackResponse:
    """The track payload served by the API and consumed by the player."""
    id: str
    cover: str
    info: TrackInfo
    saved_album_name: str
    cover_extension: str
    saved_vocal_folder_path: Optional[str]
    saved_instrumental_folder_path: str

    @property
    def has_vocal(self) -> bool:
        return not self.info.instrumental and bool(self.saved_vocal_folder_path)

    @classmethod
    def build(cls, track: Track, album: Album, cover: str) -> 'TrackResponse':
        """Shape a stored track for the API; instrumental tracks expose no vocal stem."""
        info = track.info or {}
        return cls(
            id=track.id,
            cover=cover,
            info=TrackInfo(
                title=info.get("Title"),
                artist=info.get("Artist"),
                album=info.get("Album"),
                genre=info.get("Genre"),
                length=track.total_duration,
                vocal_waveform=None if track.instrumental else track.vocal_waveform,
                instrumental_waveform=track.instrumental_waveform,
                tempo=track.tempo,
                instrumental=track.instrumental,
                key=track.key,
            ),
            saved_album_name=album.name,
            cover_extension=album.cover_extension,
            saved_vocal_folder_path="" if track.instrumental else track.vocal_folder_path,
            saved_instrumental_folder_path=track.instrumental_folder_path,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrackResponse':
        filtered = _filter_fields(cls, data)
        filtered["info"] = TrackInfo(**_filter_fields(TrackInfo, data.get("info", {})))
        return cls(**filtered)
