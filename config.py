"""
Configuration for the upload backend.

Values can be overridden through environment variables or a .env file.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# === UPLOAD QUEUE ===
UPLOAD_CONCURRENCY_LIMIT = int(os.getenv("UPLOAD_CONCURRENCY_LIMIT", "5"))  # simultaneous ingestions
# Seconds before a single ingestion is abandoned (unset = no deadline)
UPLOAD_ACTION_TIMEOUT = float(os.getenv("UPLOAD_ACTION_TIMEOUT")) if os.getenv("UPLOAD_ACTION_TIMEOUT") else None

# === FILE LIMITS (bytes) ===
SIZE_LIMITS = {
    'pdf': 50_000_000,      # 50MB
    'office': 20_000_000,   # 20MB
    'text': 5_000_000,      # 5MB
    'default': 10_000_000   # 10MB
}

OFFICE_EXTENSIONS = {".docx", ".xlsx", ".xlsm", ".pptx"}
HTML_EXTENSIONS = {".html", ".htm", ".xhtml"}
MARKDOWN_EXTENSIONS = {".md", ".markdown"}
TEXT_EXTENSIONS = {
    ".py", ".js", ".ts", ".jsx", ".tsx", ".java", ".cpp", ".c", ".h",
    ".cs", ".php", ".rb", ".go", ".rs", ".swift", ".kt", ".scala",
    ".css", ".scss", ".sass", ".less", ".json", ".xml", ".yaml", ".yml",
    ".ini", ".cfg", ".conf", ".log", ".sql", ".sh", ".bash", ".zsh",
    ".txt", ".csv", ".tsv"
}
SUPPORTED_EXTENSIONS = {".pdf"} | OFFICE_EXTENSIONS | HTML_EXTENSIONS | MARKDOWN_EXTENSIONS | TEXT_EXTENSIONS

# === VECTOR STORE ===
CHROMA_DB_PATH = os.getenv("CHROMA_DB_PATH", "./chroma")
METADATA_COLLECTION_NAME = os.getenv("METADATA_COLLECTION_NAME", "upload_metadata")
CONTENT_COLLECTION_NAME = os.getenv("CONTENT_COLLECTION_NAME", "upload_content")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "all-MiniLM-L6-v2")

# === NOTIFICATIONS ===
NOTIFICATION_HISTORY = 50           # Notifications kept in memory
NOTIFICATION_DURATION_SECONDS = 5.0 # How long a notification stays visible

# === SEARCH ===
DEFAULT_SEARCH_LIMIT = 10
SNIPPET_LENGTH = 200

# === SERVER ===
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
