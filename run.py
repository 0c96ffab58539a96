"""
Uvicorn server runner with configurable logging.

Usage:
    python run.py

Environment variables (set in .env file):
    DEBUG=true - Enable debug logging
    HOST=127.0.0.1 - Set server host (default: 127.0.0.1)
    PORT=8000 - Set server port (default: 8000)
    SLACK_BOT_TOKEN / SLACK_CHANNEL_IDS - Slack source to sync
    STORAGE_DIR - Where synced Slack files are stored (unset disables file sync)
"""

import uvicorn
from app.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    log_level = "debug" if settings.debug else "info"

    print(f"Starting {settings.app_name} server...")
    print(f"Host: {settings.host}")
    print(f"Port: {settings.port}")
    print(f"Log Level: {log_level}")
    print(f"Channels: {', '.join(settings.channel_id_list) or '(none configured)'}")
    print(f"File storage: {settings.storage_dir or '(not configured)'}")
    print(f"Docs available at: http://{settings.host}:{settings.port}/docs")

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=log_level,
        access_log=True,
    )
