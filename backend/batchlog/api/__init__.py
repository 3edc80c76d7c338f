from fastapi import APIRouter

from batchlog.api.logs import router as logs_router
from batchlog.api.logs_stream import router as logs_stream_router

api_router = APIRouter(prefix="/api")
api_router.include_router(logs_stream_router)
api_router.include_router(logs_router)
