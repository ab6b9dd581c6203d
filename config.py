import os
from dotenv import load_dotenv

load_dotenv()

DB_PATH = os.getenv("MESSAGEBOARD_DB_PATH", "messageboard.db")
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Server Configuration
DEFAULT_HOST = os.getenv("HOST", "0.0.0.0")
DEFAULT_PORT = int(os.getenv("PORT", "3000"))

# Board Listing
THREAD_LIST_LIMIT = 10
REPLY_PREVIEW_LIMIT = 3

# Moderation
DELETED_REPLY_TEXT = "[deleted]"

# Plain-text responses
TEXT_SUCCESS = "success"
TEXT_REPORTED = "reported"
TEXT_INCORRECT_PASSWORD = "incorrect password"
TEXT_THREAD_NOT_FOUND = "thread not found"
TEXT_REPLY_NOT_FOUND = "reply not found"
TEXT_NOT_FOUND = "Not Found"

# Security Settings
MAX_REQUEST_SIZE_MB = 1
GZIP_MIN_SIZE = 1000

# HTTP Status Codes
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_REQUEST_ENTITY_TOO_LARGE = 413
HTTP_INTERNAL_SERVER_ERROR = 500

# Front end
VIEWS_DIR = os.getenv("VIEWS_DIR", "views")
PUBLIC_DIR = os.getenv("PUBLIC_DIR", "public")
