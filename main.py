import time
import logging

import uvicorn
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware

from triage.api.ai_proxy import available_providers, router as ai_router
from triage.core.config import CORS_ORIGINS, LOG_DIR, LOG_LEVEL, PORT
from triage.utils.logging_config import setup_logging

setup_logging(level=LOG_LEVEL, log_dir=LOG_DIR)
logger = logging.getLogger("main")

VERSION = "0.1.0"

app = FastAPI(title="Bug Triage Helper AI Proxy", version=VERSION)


# ---------------------------------------------------------------------------
# Logging Middleware
# ---------------------------------------------------------------------------
class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_host = request.client.host if request.client else "unknown"
        logger.info("Incoming: %s %s from %s", request.method, request.url.path, client_host)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("Request failed: %s %s - Error: %s", request.method, request.url.path, e)
            raise

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            "Outgoing: %s %s - Status: %d - Time: %.2fms",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response


app.add_middleware(LoggingMiddleware)

# ---------------------------------------------------------------------------
# CORS: the triage UI calls the proxy straight from the browser
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Report which providers the proxy holds keys for, for UI auto-configuration."""
    providers = available_providers()
    return {
        "status": "ok",
        "version": VERSION,
        "availableProviders": providers,
        "recommendedProvider": providers[0] if providers else None,
    }


app.include_router(ai_router)

if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=PORT, reload=True)
