import pytest

from shared.api import create_app, origin_patterns
from shared.exceptions import StorageError

from conftest import FakeCoverStore, basic_auth, upload_item


def test_home_and_health(client, config):
    assert client.get("/").data == b"OK"

    response = client.get("/health")
    assert response.status_code == 302
    assert response.headers["Location"] == config.health_redirect_url


def test_upload_requires_basic_auth(client):
    response = client.post("/admin/albums/upload", json=[upload_item("Lights")])
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == 'Basic realm="Restricted"'

    response = client.post("/admin/albums/upload", json=[upload_item("Lights")],
                           headers=basic_auth("dj-admin", "wrong"))
    assert response.status_code == 401


def test_upload_disabled_without_admin_credentials(config, db, cover_store):
    config.admin_username = ""
    config.admin_password = ""
    client = create_app(config, db=db, cover_store=cover_store).test_client()

    response = client.post("/admin/albums/upload", json=[upload_item("Lights")],
                           headers=basic_auth("", ""))
    assert response.status_code == 401


def test_upload_creates_albums_and_tracks(client, uploaded, db):
    assert len(uploaded) == 3
    albums, total = db.get_albums(1, 10)
    assert total == 2
    assert uploaded[0]["album_id"] == uploaded[1]["album_id"]
    assert uploaded[0]["info"]["Title"] == "Lights"


def test_upload_rejects_missing_album_name(client, admin_headers):
    item = upload_item("Lights")
    del item["metadata"]["Album"]

    response = client.post("/admin/albums/upload", json=[item], headers=admin_headers)
    assert response.status_code == 400
    assert "Album name not found" in response.get_json()["error"]


def test_upload_rejects_non_list_body(client, admin_headers):
    response = client.post("/admin/albums/upload", json={"metadata": {}}, headers=admin_headers)
    assert response.status_code == 400


def test_get_track_shapes_response(client, uploaded, cover_store):
    track_id = uploaded[0]["id"]
    body = client.get(f"/track/{track_id}").get_json()

    assert body["id"] == track_id
    assert body["info"]["title"] == "Lights"
    assert body["info"]["length"] == 240.0
    assert body["info"]["vocal_waveform"] == [0.2, 0.4, 0.2, 0.1]
    assert body["saved_album_name"] == "Night Drive"
    assert body["saved_vocal_folder_path"] == "Night Drive/Lights/vocal"
    assert body["saved_instrumental_folder_path"] == "Night Drive/Lights/instrumental"
    assert body["cover"]
    assert cover_store.requests == ["Night Drive"]


def test_instrumental_track_hides_vocal_stem(client, uploaded):
    body = client.get(f"/track/{uploaded[2]['id']}").get_json()
    assert body["info"]["instrumental"] is True
    assert body["info"]["vocal_waveform"] is None
    assert body["saved_vocal_folder_path"] == ""


def test_cover_is_cached_after_first_request(client, uploaded, cover_store):
    client.get(f"/track/{uploaded[0]['id']}")
    client.get(f"/track/{uploaded[1]['id']}")
    assert cover_store.requests == ["Night Drive"]


def test_unreadable_cover_is_served_empty(config, db, admin_headers):
    client = create_app(config, db=db, cover_store=FakeCoverStore(b"not an image")).test_client()
    created = client.post("/admin/albums/upload", json=[upload_item("Lights")], headers=admin_headers).get_json()

    body = client.get(f"/track/{created[0]['id']}").get_json()
    assert body["cover"] == ""


def test_cover_fetch_failure_is_500(config, db, admin_headers):
    class BrokenStore:
        def fetch_cover(self, album_name):
            raise StorageError("Error fetching cover image: NoSuchKey")

    client = create_app(config, db=db, cover_store=BrokenStore()).test_client()
    created = client.post("/admin/albums/upload", json=[upload_item("Lights")], headers=admin_headers).get_json()

    response = client.get(f"/track/{created[0]['id']}")
    assert response.status_code == 500
    assert "NoSuchKey" in response.get_json()["error"]


def test_unknown_track_is_404(client):
    response = client.get("/track/does-not-exist")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Track not found"}


def test_random_track_records_history(client, uploaded, db):
    seen = set()
    for _ in range(3):
        response = client.post("/track/random", json={"anonId": "user_abc1234"})
        assert response.status_code == 200
        seen.add(response.get_json()["id"])

    assert seen == {t["id"] for t in uploaded}
    assert len(db.get_history("user_abc1234")) == 3


def test_random_track_requires_anon_id(client, uploaded):
    assert client.post("/track/random", json={}).status_code == 400
    assert client.post("/track/random", data="nope").status_code == 400


def test_random_track_on_empty_library(client):
    response = client.post("/track/random", json={"anonId": "user_abc1234"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "No tracks found"}


def test_albums_requires_paging(client, uploaded):
    assert client.get("/albums").status_code == 400
    assert client.get("/albums?page=x&limit=1").status_code == 400

    body = client.get("/albums?page=1&limit=1").get_json()
    assert body["total"] == 2
    assert [a["name"] for a in body["albums"]] == ["Basement"]


def test_album_tracks(client, uploaded):
    album_id = uploaded[0]["album_id"]
    body = client.get(f"/albums/{album_id}/tracks").get_json()
    assert [t["title"] for t in body["tracks"]] == ["Intro", "Lights"]
    assert body["cover"]

    assert client.get("/albums/missing/tracks").status_code == 404


def test_search(client, uploaded):
    assert client.get("/search").status_code == 400
    assert client.get("/search?q=Techno").get_json() == [uploaded[2]["album_id"]]


def test_artists_albums(client, uploaded):
    assert client.get("/artists/albums").status_code == 400

    paged = client.get("/artists/albums?paged=true&page=1&per_page=10").get_json()
    assert [(r["artist"], r["album_name"]) for r in paged] == [("Cansu", "Night Drive"), ("Other", "Basement")]

    by_id = client.post("/artists/albums?paged=false", json=[uploaded[2]["album_id"]]).get_json()
    assert by_id[0]["album_name"] == "Basement"
    assert by_id[0]["track_count"] == 1

    assert client.post("/artists/albums?paged=false", json=[]).status_code == 400


@pytest.mark.parametrize("origin,allowed", [
    ("https://cansu.dev", True),
    ("https://www.cansu.dev", True),
    ("http://localhost:5173", True),
    ("https://evil.example", False),
    ("https://cansu.dev.evil.example", False),
])
def test_cors_origins(client, origin, allowed):
    response = client.get("/", headers={"Origin": origin})
    assert (response.headers.get("Access-Control-Allow-Origin") == origin) is allowed


def test_origin_patterns_escape_domain():
    assert origin_patterns(["cansu.dev"]) == [r"^https?://(.*\.)?cansu\.dev(:\d+)?$"]
