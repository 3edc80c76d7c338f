import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from batchlog import __version__
from batchlog.api import api_router
from batchlog.config import settings
from batchlog.log_store import log_handler

# ── Logging setup ────────────────────────────────────────────────────────────
# Attach the capture handler to the root logger so batch job records from any
# module end up in the in-memory store served by the /api/batch/logs routes.

logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logging.root.addHandler(log_handler)
logging.root.setLevel(logging.DEBUG if settings.debug else logging.INFO)
# Quiet down noisy third-party loggers
for _name in ("httpcore", "httpx", "multipart"):
    logging.getLogger(_name).setLevel(logging.WARNING)

app = FastAPI(
    title=settings.app_name,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)  # REST + SSE: /api/batch/logs/...


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
