"""
Configuration module - loads all settings from environment variables.
"""
import os
from typing import Optional
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load environment variables from .env file
try:
    load_dotenv()
except Exception as e:
    print(f"Warning: Failed to load .env file: {e}")
    print("Continuing with environment variables or defaults...")


class Config:
    """Application configuration loaded from environment variables."""

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Safely parse integer environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except (ValueError, TypeError) as e:
            print(f"Warning: Invalid integer for {key}, using default {default}: {e}")
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Safely parse float environment variable."""
        try:
            return float(os.getenv(key, str(default)))
        except (ValueError, TypeError) as e:
            print(f"Warning: Invalid float for {key}, using default {default}: {e}")
            return default

    # Runware API
    RUNWARE_API_KEY: str = os.getenv("RUNWARE_API_KEY", "")
    RUNWARE_API_URL: str = os.getenv("RUNWARE_API_URL", "wss://api.runware.ai/ws")
    RUNWARE_HTTP_URL: str = os.getenv("RUNWARE_HTTP_URL", "https://api.runware.ai/v1").rstrip("/")
    # "http" posts each request, "websocket" multiplexes over one persistent socket
    VENDOR_TRANSPORT: str = os.getenv("VENDOR_TRANSPORT", "http").strip().lower()

    # Vendor timeouts (seconds)
    RUNWARE_HTTP_TIMEOUT: float = _get_float.__func__("RUNWARE_HTTP_TIMEOUT", 30.0)
    RUNWARE_RESPONSE_TIMEOUT: float = _get_float.__func__("RUNWARE_RESPONSE_TIMEOUT", 60.0)
    RUNWARE_RESULT_TIMEOUT: float = _get_float.__func__("RUNWARE_RESULT_TIMEOUT", 300.0)
    RUNWARE_KEEPALIVE_INTERVAL: float = _get_float.__func__("RUNWARE_KEEPALIVE_INTERVAL", 30.0)

    # Telegram
    TELEGRAM_API_TOKEN: str = os.getenv("TELEGRAM_API_TOKEN", "")
    TELEGRAM_API_BASE: str = os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org").rstrip("/")
    TELEGRAM_TIMEOUT: float = _get_float.__func__("TELEGRAM_TIMEOUT", 10.0)
    WEBAPP_URL: str = os.getenv("WEBAPP_URL", "")
    ADMIN_CHAT_ID: str = os.getenv("ADMIN_CHAT_ID", "")

    # Static WebApp
    STATIC_DIR: str = os.getenv("STATIC_DIR", "public")

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _get_int.__func__("PORT", 3000)
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    VERSION: str = "1.0.0"

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not cls.RUNWARE_API_KEY:
            raise ValueError("RUNWARE_API_KEY environment variable is required")
        if cls.VENDOR_TRANSPORT not in ("http", "websocket"):
            raise ValueError(f"VENDOR_TRANSPORT must be 'http' or 'websocket', got '{cls.VENDOR_TRANSPORT}'")

    @classmethod
    def webapp_host(cls) -> Optional[str]:
        """Host part of WEBAPP_URL, used as the fallback webhook host."""
        if not cls.WEBAPP_URL:
            return None
        return urlparse(cls.WEBAPP_URL).netloc or None
