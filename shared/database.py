"""
SQLite Database Manager for the DJ service.
Stores albums, stemmed tracks, per-listener history and optimized covers.
"""

import sqlite3
import json
import logging
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple
from shared.models import Album, Track, ListeningHistory
from shared.constants import DEFAULT_DATABASE_PATH

logger = logging.getLogger(__name__)

JSON_INDEXES = {
    "idx_tracks_artist": "CREATE INDEX IF NOT EXISTS idx_tracks_artist ON tracks(json_extract(info, '$.Artist'))",
    "idx_tracks_genre": "CREATE INDEX IF NOT EXISTS idx_tracks_genre ON tracks(json_extract(info, '$.Genre'))",
    "idx_tracks_title": "CREATE INDEX IF NOT EXISTS idx_tracks_title ON tracks(json_extract(info, '$.Title'))",
}

ARTIST_ALBUMS_SELECT = """
    SELECT DISTINCT
        json_extract(t.info, '$.Artist') AS artist,
        json_extract(t.info, '$.Genre') AS genre,
        a.id AS album_id,
        a.name AS album_name
    FROM albums a
    JOIN tracks t ON t.album_id = a.id
"""

TRACK_COUNT_SELECT = """
    (SELECT COUNT(DISTINCT t2.id) FROM tracks t2
     WHERE json_extract(t2.info, '$.Artist') = aa.artist) AS track_count
"""


class DatabaseManager:
    def __init__(self, db_path: Optional[str] = None):
        if db_path is None:
            self.db_path = Path(DEFAULT_DATABASE_PATH).expanduser()
        else:
            self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    def _get_connection(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _init_db(self):
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS albums (
                    id TEXT PRIMARY KEY,
                    name TEXT UNIQUE NOT NULL,
                    cover_extension TEXT NOT NULL DEFAULT ''
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tracks (
                    id TEXT PRIMARY KEY,
                    album_id TEXT NOT NULL REFERENCES albums(id),
                    vocal_folder_path TEXT,
                    instrumental_folder_path TEXT NOT NULL,
                    total_duration REAL NOT NULL,
                    vocal_waveform TEXT,
                    instrumental_waveform TEXT,
                    info TEXT NOT NULL,
                    instrumental BOOLEAN NOT NULL DEFAULT 0,
                    tempo REAL,
                    key TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS listening_histories (
                    track_id TEXT NOT NULL,
                    anon_id TEXT NOT NULL,
                    listened_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS optimized_covers (
                    album_id TEXT PRIMARY KEY,
                    cover TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_histories_anon ON listening_histories(anon_id, track_id)"
            )
            for name, statement in JSON_INDEXES.items():
                conn.execute(statement)
                logger.debug(f"Index {name} created or already exists")

    # --- Albums ---

    def get_album(self, album_id: str) -> Optional[Album]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM albums WHERE id = ?", (album_id,)).fetchone()
            return Album.from_dict(dict(row)) if row else None

    def find_or_create_album(self, name: str) -> Album:
        """Return the album with this name, creating it when missing."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM albums WHERE name = ?", (name,)).fetchone()
            if row:
                return Album.from_dict(dict(row))
            album = Album(id=Album.generate_id(), name=name, cover_extension="")
            conn.execute(
                "INSERT INTO albums (id, name, cover_extension) VALUES (?, ?, ?)",
                (album.id, album.name, album.cover_extension),
            )
            logger.info(f"Created album '{name}' ({album.id})")
            return album

    def get_albums(self, page: int, limit: int) -> Tuple[List[Album], int]:
        """Fetch one page of albums (1-based) and the total album count."""
        offset = max(page - 1, 0) * limit
        with self._get_connection() as conn:
            total = conn.execute("SELECT COUNT(*) FROM albums").fetchone()[0]
            rows = conn.execute(
                "SELECT * FROM albums ORDER BY name LIMIT ? OFFSET ?", (limit, offset)
            ).fetchall()
            return [Album.from_dict(dict(row)) for row in rows], total

    def get_album_tracks(self, album_id: str) -> List[Dict[str, Any]]:
        """List an album's tracks in track-number order."""
        with self._get_connection() as conn:
            cursor = conn.execute("""
                SELECT t.id,
                       json_extract(t.info, '$.Title') AS title,
                       t.total_duration AS duration
                FROM tracks t
                WHERE t.album_id = ?
                ORDER BY CAST(json_extract(t.info, '$.Track') AS INTEGER), json_extract(t.info, '$.Track')
            """, (album_id,))
            return [dict(row) for row in cursor.fetchall()]

    # --- Tracks ---

    def insert_track(self, track: Track) -> Track:
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO tracks (
                    id, album_id, vocal_folder_path, instrumental_folder_path,
                    total_duration, vocal_waveform, instrumental_waveform,
                    info, instrumental, tempo, key
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                track.id, track.album_id, track.vocal_folder_path, track.instrumental_folder_path,
                track.total_duration,
                json.dumps(track.vocal_waveform) if track.vocal_waveform is not None else None,
                json.dumps(track.instrumental_waveform),
                json.dumps(track.info), track.instrumental, track.tempo, track.key,
            ))
        return track

    def get_track(self, track_id: str) -> Optional[Track]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM tracks WHERE id = ?", (track_id,)).fetchone()
            return self._row_to_track(row) if row else None

    def random_track(self, anon_id: str) -> Optional[Track]:
        """
        Pick a random track this listener has not heard yet.

        When every track has been heard, the listener's history is cleared and
        any random track is returned, in a single transaction.

        Returns:
            A Track, or None when the library is empty
        """
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("""
                SELECT t.* FROM tracks t
                LEFT JOIN listening_histories lh
                    ON t.id = lh.track_id AND lh.anon_id = ?
                WHERE lh.track_id IS NULL
                ORDER BY RANDOM()
                LIMIT 1
            """, (anon_id,)).fetchone()
            if row is None:
                cleared = conn.execute(
                    "DELETE FROM listening_histories WHERE anon_id = ?", (anon_id,)
                ).rowcount
                logger.debug(f"Listener {anon_id} heard everything; cleared {cleared} history rows")
                row = conn.execute("SELECT * FROM tracks ORDER BY RANDOM() LIMIT 1").fetchone()
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()
        return self._row_to_track(row) if row else None

    def record_listen(self, track_id: str, anon_id: str) -> ListeningHistory:
        entry = ListeningHistory(track_id=track_id, anon_id=anon_id)
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO listening_histories (track_id, anon_id, listened_at) VALUES (?, ?, ?)",
                (entry.track_id, entry.anon_id, entry.listened_at),
            )
        return entry

    def get_history(self, anon_id: str) -> List[ListeningHistory]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM listening_histories WHERE anon_id = ? ORDER BY listened_at",
                (anon_id,),
            ).fetchall()
            return [ListeningHistory(**dict(row)) for row in rows]

    # --- Search ---

    def search_album_ids(self, query: str) -> List[str]:
        """Distinct album ids whose tracks match the query in title, artist, album or genre."""
        pattern = f"%{query}%"
        with self._get_connection() as conn:
            cursor = conn.execute("""
                SELECT DISTINCT album_id FROM tracks
                WHERE json_extract(info, '$.Title') LIKE ?
                   OR json_extract(info, '$.Artist') LIKE ?
                   OR json_extract(info, '$.Album') LIKE ?
                   OR json_extract(info, '$.Genre') LIKE ?
            """, (pattern, pattern, pattern, pattern))
            return [row["album_id"] for row in cursor.fetchall()]

    def artists_albums_paged(self, page: int, per_page: int) -> List[Dict[str, Any]]:
        """One page of (artist, album) pairs ordered by artist then album name."""
        page = max(page, 1)
        per_page = per_page if per_page >= 1 else 10
        with self._get_connection() as conn:
            cursor = conn.execute(f"""
                WITH artist_albums AS ({ARTIST_ALBUMS_SELECT})
                SELECT aa.artist, aa.genre, aa.album_id, aa.album_name,
                       {TRACK_COUNT_SELECT}
                FROM artist_albums aa
                ORDER BY aa.artist, aa.album_name
                LIMIT ? OFFSET ?
            """, (per_page, (page - 1) * per_page))
            return [dict(row) for row in cursor.fetchall()]

    def artists_albums_by_ids(self, album_ids: List[str]) -> List[Dict[str, Any]]:
        if not album_ids:
            return []
        placeholders = ",".join(["?"] * len(album_ids))
        with self._get_connection() as conn:
            cursor = conn.execute(f"""
                WITH artist_albums AS ({ARTIST_ALBUMS_SELECT} WHERE a.id IN ({placeholders}))
                SELECT aa.artist, aa.genre, aa.album_id, aa.album_name,
                       {TRACK_COUNT_SELECT}
                FROM artist_albums aa
                ORDER BY aa.artist, aa.album_name
            """, list(album_ids))
            return [dict(row) for row in cursor.fetchall()]

    # --- Covers ---

    def get_cover(self, album_id: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT cover FROM optimized_covers WHERE album_id = ?", (album_id,)
            ).fetchone()
            return row["cover"] if row else None

    def save_cover(self, album_id: str, cover: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO optimized_covers (album_id, cover) VALUES (?, ?)",
                (album_id, cover),
            )

    def get_stats(self) -> Dict[str, int]:
        with self._get_connection() as conn:
            albums = conn.execute("SELECT COUNT(*) FROM albums").fetchone()[0]
            tracks = conn.execute("SELECT COUNT(*) FROM tracks").fetchone()[0]
            instrumental = conn.execute("SELECT COUNT(*) FROM tracks WHERE instrumental = 1").fetchone()[0]
            return {"albums": albums, "tracks": tracks, "instrumental": instrumental}

    def _row_to_track(self, row: sqlite3.Row) -> Track:
        data = dict(row)
        data["info"] = json.loads(data["info"]) if data.get("info") else {}
        data["instrumental_waveform"] = json.loads(data["instrumental_waveform"]) if data.get("instrumental_waveform") else []
        data["vocal_waveform"] = json.loads(data["vocal_waveform"]) if data.get("vocal_waveform") else None
        data["instrumental"] = bool(data["instrumental"])
        return Track.from_dict(data)
