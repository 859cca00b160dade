# thyrotrack/app.py
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"

# env must be loaded before modules that read configuration at import time
load_dotenv(ENV_PATH)

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from thyrotrack.middleware.tracing import TRACE_ID_CTX_VAR, TracingMiddleware  # noqa: E402
from thyrotrack.models import init_db  # noqa: E402
from thyrotrack.routes import auth_routes, dashboard_routes, thyroid_routes  # noqa: E402
from thyrotrack.utils.exceptions import register_exception_handlers  # noqa: E402
from thyrotrack.utils.rate_limit import limiter  # noqa: E402

CORS_ORIGINS = [
    origin.strip()
    for origin in (os.getenv("CORS_ORIGINS") or "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if origin.strip()
]


# --- logging setup ---
class JsonFormatter(logging.Formatter):
    def format(self, record):  # type: ignore[override]
        message = record.msg if isinstance(record.msg, dict) else record.getMessage()
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "function": record.funcName,
            "trace_id": TRACE_ID_CTX_VAR.get() or None,
            "message": message,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> logging.Logger:
    logger = logging.getLogger("thyrotrack")
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    return logger


logger = configure_logging()

app = FastAPI(title="ThyroTrack Backend", version="0.1.0")

app.state.limiter = limiter
app.add_middleware(TracingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(auth_routes.router)
app.include_router(dashboard_routes.router)
app.include_router(thyroid_routes.router)


@app.on_event("startup")
def _init_db():
    init_db()
    logger.info({"function": "startup", "status": "tables_ready"})


@app.get("/", tags=["health"])
def root():
    return {"message": "Thyroid Backend Server Running Successfully"}
