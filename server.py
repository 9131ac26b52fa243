"""Run the presentation API under uvicorn (``python server.py``).

ENV=dev (default) binds to localhost with auto-reload; any other value binds
to HOST (default 0.0.0.0) and trusts proxy headers from the load balancer.
"""
import os

import uvicorn

if __name__ == "__main__":
    dev = os.environ.get("ENV", "dev") == "dev"
    port = int(os.environ.get("PORT", 8000))
    host = os.environ.get("HOST") or ("127.0.0.1" if dev else "0.0.0.0")
    log_level = "debug" if os.environ.get("DEBUG", "false").lower() == "true" else "info"

    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=dev,
        proxy_headers=not dev,
        log_level=log_level,
    )
