"""
Shared constants used across the platform.
"""

# Seek synchronization
SEEK_DEBOUNCE_SEC = 0.05
SYNC_THRESHOLD_SEC = 0.1  # seconds of drift tolerated before a position write
SEEK_PRECISION = 2  # decimal places kept when applying a seek

# Streaming
HLS_PLAYLIST_NAME = "playlist.m3u8"
DEFAULT_STATIC_URL = "https://static.cansu.dev"

# Storage
DEFAULT_S3_BUCKET = "cansu-dev-dj"
CLOUDFLARE_R2_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"
COVER_FILENAME = "cover.jpg"
COVER_MAX_WIDTH = 400  # pixels, covers are only ever shrunk
COVER_JPEG_QUALITY = 85

# API
DEFAULT_PORT = 5005
DEFAULT_ALLOWED_DOMAINS = ["cansu.dev", "localhost"]
DEFAULT_HEALTH_REDIRECT_URL = "https://www.youtube.com/watch?v=NuXjeEC2XOA"
DEFAULT_ARTISTS_PER_PAGE = 10
CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_MAX_AGE = 30

# Configuration paths
DEFAULT_CONFIG_DIR = "~/.config/stemcast"
DEFAULT_DATA_DIR = "~/.local/share/stemcast"
DEFAULT_DATABASE_PATH = DEFAULT_DATA_DIR + "/dj.db"
PREFERENCES_FILENAME = "preferences.json"

# Preference keys (mirrors the web player's local storage)
PREF_WARNING_SHOWN = "warningShown"
PREF_INSTRUMENT_VOLUME = "instrumentVolume"
PREF_VOCAL_VOLUME = "vocalVolume"
PREF_ANONYMOUS_ID = "anonymousId"
DEFAULT_VOLUME = 100

# Network Settings
DEFAULT_NETWORK_TIMEOUT = 30  # seconds

# Uploader
SUPPORTED_AUDIO_FORMATS = [".mp3", ".flac", ".ogg", ".m4a", ".wav", ".opus"]
PEAKS_SIDECAR_SUFFIX = ".peaks.json"
