"""
Configuration constants for the live auction recovery engine.
"""

# Remote Realtime Store
REMOTE_DATABASE_URL = "https://cclauctions-default-rtdb.asia-southeast1.firebasedatabase.app"
REMOTE_AUCTIONS_PATH = 'auctions'
REMOTE_WRITE_TIMEOUT = 30  # seconds; fetches are never timed out

# Environment overrides (read by the CLI only)
DATABASE_URL_ENV = 'AUCTION_DATABASE_URL'
DATABASE_AUTH_ENV = 'AUCTION_DATABASE_AUTH'

# Local Storage
LOCAL_CACHE_FILE = 'data/local_cache.json'
PHOTO_STORE_DIR = 'data/photos'

# Every key starting with one of these prefixes is a cached auction record
AUCTION_KEY_PREFIXES = ('auction_', 'auction_setup_')
AUCTION_STATE_KEY_PREFIX = 'auction_'
CURRENT_AUCTION_KEY = 'current_auction_id'

# Bump to force every device to drop its cached auction records on next start
APP_VERSION_KEY = 'app_version'
APP_VERSION = '2.0.0'

# Identifiers
# New auctions: short, readable, no confusable characters (0, O, I, 1)
AUCTION_ID_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
AUCTION_ID_LENGTH = 6

# Resumed sessions: uppercase base-36 token
SESSION_ID_ALPHABET = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ'
SESSION_ID_LENGTH = 8

# Resume Defaults
DEFAULT_TOURNAMENT = 'Recovered Auction'
DEFAULT_ROUND = 1
DEFAULT_ATTEMPT = 1
DEFAULT_PLAYER_IDX = 0
DEFAULT_BALANCE = 0

# Closed set of bid outcomes; the resume path never invents 'Sold'
BID_STATUSES = ('Sold', 'Unsold', 'Skipped')
DEFAULT_STATUS = 'Unsold'

# Recovery Prompt
RECENT_AUCTIONS_LIMIT = 10

# Photos that are references rather than embedded payloads
PHOTO_URL_PREFIXES = ('http://', 'https://', '/')

# Resume Log CSV
LOG_STATE_MARKER = '__STATE__'
LOG_CSV_COLUMNS = [
    'Sequence', 'Round', 'Attempt', 'Timestamp', 'Player',
    'Category', 'Team', 'Bid Amount', 'Status'
]

# Logging
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# API Server
API_HOST = '127.0.0.1'
API_PORT = 8000
