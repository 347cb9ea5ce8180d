import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///studysync.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Request body limit for server actions
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50 MB

    # Strict rendering checks (Jinja StrictUndefined) are off
    STRICT_TEMPLATES = False

    # Rendered page cache (per process)
    PAGE_CACHE_ENABLED = True
    PAGE_CACHE_MAX_ENTRIES = int(os.getenv("PAGE_CACHE_MAX_ENTRIES", "256"))

    # OpenRouter
    OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
    OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
    DEFAULT_CHAT_MODEL = os.getenv("CHAT_MODEL", "google/gemini-3-flash-preview")

    # Knowledge base retrieval
    EMBEDDING_DIM = 384
    MATCH_THRESHOLD = 0.3
    MATCH_COUNT = 3

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs"))
