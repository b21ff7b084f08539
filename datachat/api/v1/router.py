from fastapi import APIRouter

from datachat.api.v1.endpoints.chat import router as chat_router
from datachat.api.v1.endpoints.health import router as health_router
from datachat.api.v1.endpoints.upload import router as upload_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(upload_router)
api_router.include_router(chat_router)
