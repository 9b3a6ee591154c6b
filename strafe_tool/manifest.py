"""
Builds upload manifests from a folder of stems.

Each audio file becomes one upload item; its tags are read with mutagen into
the exiftool-style metadata the API stores (Title, Artist, Album, Genre,
Track). Waveform peaks come from an optional `<file>.peaks.json` sidecar
holding either a list of peaks or `{"instrumental": [...], "vocal": [...]}`.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mutagen import File as MutagenFile, MutagenError

from shared.constants import PEAKS_SIDECAR_SUFFIX, SUPPORTED_AUDIO_FORMATS
from shared.models import TrackUpload

logger = logging.getLogger(__name__)

# easy tag name -> stored metadata key
TAG_MAP = {
    "title": "Title",
    "artist": "Artist",
    "album": "Album",
    "genre": "Genre",
    "tracknumber": "Track",
    "date": "Year",
}


def is_supported(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_AUDIO_FORMATS


def read_metadata(path: Path) -> Dict[str, Any]:
    """
    Read tags and duration from an audio file.

    Returns:
        Metadata dict with a float `Duration` in seconds; empty when the file
        cannot be parsed.
    """
    try:
        audio = MutagenFile(path, easy=True)
    except MutagenError as e:
        logger.warning(f"Could not read {path}: {e}")
        return {}
    if audio is None:
        return {}

    metadata: Dict[str, Any] = {"FileName": path.name}
    if audio.tags:
        for tag, key in TAG_MAP.items():
            values = audio.tags.get(tag)
            if values:
                metadata[key] = str(values[0])
    metadata["Duration"] = float(getattr(audio.info, "length", 0.0) or 0.0)
    return metadata


def read_peaks(path: Path) -> Dict[str, Optional[List[float]]]:
    sidecar = path.with_name(path.name + PEAKS_SIDECAR_SUFFIX)
    if not sidecar.exists():
        return {"instrumental": [], "vocal": None}
    try:
        data = json.loads(sidecar.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Ignoring unreadable peaks file {sidecar.name}: {e}")
        return {"instrumental": [], "vocal": None}
    if isinstance(data, list):
        return {"instrumental": data, "vocal": None}
    return {"instrumental": data.get("instrumental") or [], "vocal": data.get("vocal")}


def folder_paths(metadata: Dict[str, Any], instrumental: bool) -> Dict[str, Optional[str]]:
    base = f"{metadata.get('Album', 'Unknown')}/{metadata.get('Title', 'Unknown')}"
    return {
        "instrumental": f"{base}/instrumental",
        "vocal": None if instrumental else f"{base}/vocal",
    }


def build_manifest(folder: Path, instrumental: bool = False, key: str = "",
                   tempo: float = 0.0) -> List[TrackUpload]:
    """Scan `folder` recursively and return one upload item per tagged audio file."""
    items = []
    for path in sorted(p for p in Path(folder).rglob("*") if p.is_file() and is_supported(p)):
        metadata = read_metadata(path)
        if not metadata.get("Album"):
            logger.warning(f"Skipping {path.name}: no album tag")
            continue

        length = metadata.pop("Duration", 0.0)
        peaks = read_peaks(path)
        paths = folder_paths(metadata, instrumental)
        items.append(TrackUpload(
            metadata=metadata,
            key=key,
            tempo=tempo,
            length=length,
            instrumental_folder_path=paths["instrumental"],
            instrumental=instrumental,
            vocal_folder_path=paths["vocal"],
            waveform=peaks["instrumental"],
            vocal_waveform=None if instrumental else peaks["vocal"],
        ))
    return items
