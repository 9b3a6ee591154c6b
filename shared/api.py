"""
REST API for the DJ service.
Serves albums and stemmed tracks to the player and accepts bulk uploads
from the strafe tool.
"""

import hmac
import logging
import re
from functools import wraps
from typing import Optional

from flask import Flask, Response, jsonify, redirect, request
from flask_cors import CORS

from shared.config import ServerConfig
from shared.constants import CORS_MAX_AGE, CORS_METHODS, DEFAULT_ARTISTS_PER_PAGE
from shared.database import DatabaseManager
from shared.exceptions import BadRequestError, NotFoundError, StemcastError
from shared.models import TrackResponse, TrackUpload
from shared.storage import CoverService, CoverStore

logger = logging.getLogger(__name__)


def origin_patterns(domains):
    """CORS origin regexes accepting each domain, its subdomains and any port."""
    return [rf"^https?://(.*\.)?{re.escape(domain)}(:\d+)?$" for domain in domains]


def _int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise BadRequestError(f"{name} must be an integer")


def create_app(config: ServerConfig, db: Optional[DatabaseManager] = None,
               cover_store: Optional[CoverStore] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Server settings
        db: Database to use; opened from config.database_path when omitted
        cover_store: Cover storage; built from the S3 settings when omitted
    """
    if db is None:
        db = DatabaseManager(str(config.resolved_database_path))
    if cover_store is None and (config.s3_account_id or config.s3_endpoint):
        cover_store = CoverStore.from_config(config)
    covers = CoverService(db, cover_store)

    app = Flask(__name__)
    app.config["STEMCAST"] = config
    app.extensions["stemcast_db"] = db

    CORS(
        app,
        origins=origin_patterns(config.allowed_domains),
        methods=CORS_METHODS,
        allow_headers=["Content-Type"],
        expose_headers=["Link"],
        max_age=CORS_MAX_AGE,
        supports_credentials=False,
    )

    @app.errorhandler(StemcastError)
    def handle_stemcast_error(error: StemcastError):
        if error.status >= 500:
            logger.error(f"{request.method} {request.path}: {error.message}")
        return jsonify({"error": error.message}), error.status

    def requires_admin(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            auth = request.authorization
            valid = (
                config.admin_configured
                and auth is not None
                and hmac.compare_digest(auth.username or "", config.admin_username)
                and hmac.compare_digest(auth.password or "", config.admin_password)
            )
            if not valid:
                logger.warning(f"Rejected admin request from {request.remote_addr}")
                return Response(
                    "Unauthorized", 401, {"WWW-Authenticate": 'Basic realm="Restricted"'}
                )
            return view(*args, **kwargs)
        return wrapper

    def track_response(track) -> dict:
        album = db.get_album(track.album_id)
        if album is None:
            raise StemcastError("Album not found", 500)
        return TrackResponse.build(track, album, covers.cover_for(album)).to_dict()

    @app.route('/')
    def home():
        return "OK"

    @app.route('/health')
    def health_check():
        return redirect(config.health_redirect_url)

    # --- Albums ---

    @app.route('/albums', methods=['GET'])
    def get_albums():
        page = _int_arg("page")
        limit = _int_arg("limit")
        if page is None or limit is None:
            raise BadRequestError("Page and limit are required")
        albums, total = db.get_albums(page, limit)
        return jsonify({"albums": [a.to_dict() for a in albums], "total": total})

    @app.route('/albums/<album_id>/tracks', methods=['GET'])
    def get_album_tracks(album_id):
        album = db.get_album(album_id)
        if album is None:
            raise NotFoundError("Album not found")
        tracks = db.get_album_tracks(album_id)
        return jsonify({"tracks": tracks, "cover": covers.cover_for(album)})

    @app.route('/search', methods=['GET'])
    def search_albums():
        query = request.args.get('q', '').strip()
        if not query:
            raise BadRequestError("Query is required")
        return jsonify(db.search_album_ids(query))

    @app.route('/artists/albums', methods=['GET', 'POST'])
    def get_artists_albums():
        paged = request.args.get('paged')
        if paged == "true":
            page = _int_arg("page", 1)
            per_page = _int_arg("per_page", DEFAULT_ARTISTS_PER_PAGE)
            return jsonify(db.artists_albums_paged(page, per_page))
        if paged == "false":
            album_ids = request.get_json(silent=True)
            if not isinstance(album_ids, list) or not album_ids:
                raise BadRequestError("No album IDs provided")
            return jsonify(db.artists_albums_by_ids([str(i) for i in album_ids]))
        raise BadRequestError("Pagination parameter is required")

    # --- Tracks ---

    @app.route('/track/<track_id>', methods=['GET'])
    def get_track(track_id):
        track = db.get_track(track_id)
        if track is None:
            raise NotFoundError("Track not found")
        return jsonify(track_response(track))

    @app.route('/track/random', methods=['POST'])
    def get_random_track():
        body = request.get_json(silent=True)
        anon_id = body.get("anonId") if isinstance(body, dict) else None
        if not anon_id or not isinstance(anon_id, str):
            raise BadRequestError("Invalid request body")

        track = db.random_track(anon_id)
        if track is None:
            raise BadRequestError("No tracks found")

        response = track_response(track)
        db.record_listen(track.id, anon_id)
        return jsonify(response)

    # --- Admin ---

    @app.route('/admin/albums/upload', methods=['POST'])
    @requires_admin
    def upload_albums():
        body = request.get_json(silent=True)
        if not isinstance(body, list):
            raise BadRequestError("Body must be a list of tracks")

        uploads = [TrackUpload.from_dict(item) for item in body]
        results = []
        for upload in uploads:
            album = db.find_or_create_album(upload.album_name)
            track = db.insert_track(upload.to_track(album.id))
            results.append(track.to_dict())

        logger.info(f"Uploaded {len(results)} tracks")
        return jsonify(results), 201

    return app


def start_api(config: ServerConfig, debug: bool = False):
    app = create_app(config)
    logger.info(f"Starting server on port {config.port}")
    app.run(host='0.0.0.0', port=config.port, debug=debug)
