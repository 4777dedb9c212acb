#!/usr/bin/env python3
"""
Configuration settings for the poem archive bot.

- When running standalone, default values are used for all environment variables.
- When running under systemd or Docker, values from poem-bot.env override the defaults.
- Credentials are not read here; see config/bot_strategy.py.
"""
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

def _abs_path(path, base=PROJECT_ROOT):
    if not path:
        raise ValueError("Missing required path for the bot.")
    if os.path.isabs(path):
        return path
    if not base:
        raise ValueError("Base directory must be provided for relative paths.")
    return os.path.join(base, path)

# Identity variant: "primary" or "secondary"
BOT_TYPE = os.getenv("BOT_TYPE", "primary").strip().lower()

# File Paths
LOG_DIR = _abs_path(os.getenv("LOG_DIR", "logs"))
LOCK_DIR = _abs_path(os.getenv("LOCK_DIR", "."))

# Telegram Configuration
TELEGRAM_API_BASE = os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org")
TELEGRAM_POLL_TIMEOUT = int(os.getenv("TELEGRAM_POLL_TIMEOUT", "30"))
TELEGRAM_POLL_LIMIT = int(os.getenv("TELEGRAM_POLL_LIMIT", "100"))
CONFLICT_BACKOFF_SECONDS = float(os.getenv("CONFLICT_BACKOFF_SECONDS", "30"))
POLL_ERROR_BACKOFF_SECONDS = float(os.getenv("POLL_ERROR_BACKOFF_SECONDS", "5"))
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "60"))

# Photos sharing a media_group_id arrive as separate updates; wait this long before processing
MEDIA_GROUP_WINDOW_SECONDS = float(os.getenv("MEDIA_GROUP_WINDOW_SECONDS", "1.0"))

# Google Drive Configuration
DRIVE_API_BASE = os.getenv("DRIVE_API_BASE", "https://www.googleapis.com/drive/v3")
DRIVE_UPLOAD_BASE = os.getenv("DRIVE_UPLOAD_BASE", "https://www.googleapis.com/upload/drive/v3")

# OpenAI transcription (primary engine)
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_MAX_TOKENS = int(os.getenv("OPENAI_MAX_TOKENS", "4000"))
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.1"))

# Tesseract OCR configuration (fallback engine)
TESSERACT_LANGS = os.getenv("TESSERACT_LANGS", "spa+eng")
TESSERACT_PSM = int(os.getenv("TESSERACT_PSM", "6"))
TESSERACT_OEM = int(os.getenv("TESSERACT_OEM", "1"))
TESSDATA_PREFIX = os.getenv("TESSDATA_PREFIX", "")

# Image normalization
NORMALIZE_MAX_WIDTH = int(os.getenv("NORMALIZE_MAX_WIDTH", "2048"))
NORMALIZE_JPEG_QUALITY = int(os.getenv("NORMALIZE_JPEG_QUALITY", "90"))
# Image.MAX_IMAGE_PIXELS is set in processors/image_processor.py when PIL is imported

# Transcript formatting
NOTEBOOK_WORD = os.getenv("NOTEBOOK_WORD", "libro")
NOTEBOOK_LABEL = os.getenv("NOTEBOOK_LABEL", "Libro")
TRANSCRIPT_LANGUAGE = os.getenv("TRANSCRIPT_LANGUAGE", "es")
UNTITLED_PLACEHOLDER = os.getenv("UNTITLED_PLACEHOLDER", "poema_sin_titulo")
FILENAME_TITLE_CHARS = int(os.getenv("FILENAME_TITLE_CHARS", "50"))

# Telegram messages are capped at 4096 chars; leave room for the header lines
DISPLAY_LIMIT_SINGLE = int(os.getenv("DISPLAY_LIMIT_SINGLE", "3800"))
DISPLAY_LIMIT_BATCH = int(os.getenv("DISPLAY_LIMIT_BATCH", "1000"))
CONTINUATION_NOTICE = "\n\n...(continúa en Drive)"

# Ensure log directory exists
os.makedirs(LOG_DIR, exist_ok=True)

# Metrics Configuration
METRICS_ENABLED = os.getenv("METRICS_ENABLED", "true").lower() == "true"
METRICS_LOG_FILE = os.getenv("METRICS_LOG_FILE", "metrics.jsonl")
METRICS_LOG_TO_STDOUT = os.getenv("METRICS_LOG_TO_STDOUT", "true").lower() == "true"
