"""Single entry point for the AutoConnect service."""
import os
import uvicorn

from autoconnect.logging_config import setup_logging

if __name__ == "__main__":
    setup_logging()
    port = int(os.environ.get("PORT", 8000))
    host = os.environ.get("HOST", "127.0.0.1")

    uvicorn.run(
        "autoconnect.app:app",
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
