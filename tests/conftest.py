import base64
import io

import pytest
from PIL import Image

from shared.api import create_app
from shared.config import ServerConfig
from shared.database import DatabaseManager

ADMIN = ("dj-admin", "s3cret")


def jpeg_bytes(size=(640, 480), color=(200, 40, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


class FakeCoverStore:
    def __init__(self, data: bytes = None):
        self.data = data if data is not None else jpeg_bytes()
        self.requests = []

    def fetch_cover(self, album_name: str) -> bytes:
        self.requests.append(album_name)
        return self.data


def upload_item(title, album="Night Drive", artist="Cansu", genre="House", track="1",
                instrumental=False, length=240.0):
    return {
        "metadata": {"Title": title, "Artist": artist, "Album": album, "Genre": genre, "Track": track},
        "key": "Am",
        "tempo": 124.0,
        "length": length,
        "instrumentalFolderPath": f"{album}/{title}/instrumental",
        "instrumental": instrumental,
        "vocalFolderPath": None if instrumental else f"{album}/{title}/vocal",
        "waveform": [0.1, 0.5, 0.9, 0.3],
        "vocalWaveform": None if instrumental else [0.2, 0.4, 0.2, 0.1],
    }


def basic_auth(username, password):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def db(tmp_path):
    return DatabaseManager(str(tmp_path / "dj.db"))


@pytest.fixture
def cover_store():
    return FakeCoverStore()


@pytest.fixture
def config(tmp_path):
    return ServerConfig(
        database_path=str(tmp_path / "dj.db"),
        admin_username=ADMIN[0],
        admin_password=ADMIN[1],
    )


@pytest.fixture
def app(config, db, cover_store):
    app = create_app(config, db=db, cover_store=cover_store)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return basic_auth(*ADMIN)


@pytest.fixture
def uploaded(client, admin_headers):
    """Three tracks on two albums, one of them instrumental-only."""
    body = [
        upload_item("Lights", track="2"),
        upload_item("Intro", track="1"),
        upload_item("Dub", album="Basement", artist="Other", genre="Techno", instrumental=True),
    ]
    response = client.post("/admin/albums/upload", json=body, headers=admin_headers)
    assert response.status_code == 201
    return response.get_json()
