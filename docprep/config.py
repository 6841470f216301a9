import os

from dotenv import load_dotenv

load_dotenv()  # Loads variables from .env file


def _flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret-key")

    # Relational store
    DATABASE_PATH = os.getenv("DATABASE_PATH", "docprep.db")

    # Object store
    STORAGE_FOLDER = os.getenv("STORAGE_FOLDER", "uploads")
    STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "templates")
    TEMPLATE_STORAGE_URL = os.getenv("TEMPLATE_STORAGE_URL", "")

    # Page previews
    PREVIEW_FOLDER = os.getenv("PREVIEW_FOLDER", os.path.join("static", "previews"))
    POPPLER_PATH = os.getenv("POPPLER_PATH")  # None lets pdf2image search PATH
    PREVIEW_DPI = int(os.getenv("PREVIEW_DPI", "72"))

    # Conversion service
    CONVERTER = os.getenv("CONVERTER", "adobe")
    ADOBE_CLIENT_ID = os.getenv("ADOBE_CLIENT_ID", "")
    ADOBE_CLIENT_SECRET = os.getenv("ADOBE_CLIENT_SECRET", "")
    ADOBE_API_BASE = os.getenv("ADOBE_API_BASE", "https://pdf-services.adobe.io")
    CONVERSION_TIMEOUT = int(os.getenv("CONVERSION_TIMEOUT", "120"))

    MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_MB", "50")) * 1024 * 1024

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", "10000"))
    USE_NGROK = _flag("USE_NGROK")
