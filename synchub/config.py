"""Runtime configuration loaded from environment variables.

Everything the hub needs besides its listen address is a queue bound; the
defaults reproduce an unbounded router hand-off with buffered, drop-on-full
per-client delivery.
"""

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """
    Typed settings object used across the hub.

    Values are read from the environment once, when this module is first
    imported; later changes to the environment are not picked up. Pass a
    `Settings` instance with overridden attributes to `create_app` instead.
    """

    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "2794"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    router_queue_size: int = int(os.getenv("ROUTER_QUEUE_SIZE", "0"))
    outward_queue_size: int = int(os.getenv("OUTWARD_QUEUE_SIZE", "1024"))
    event_log_queue_size: int = int(os.getenv("EVENT_LOG_QUEUE_SIZE", "256"))
    cors_origins: list[str] = [x.strip() for x in os.getenv("CORS_ORIGINS", "*").split(",") if x.strip()]


settings = Settings()
