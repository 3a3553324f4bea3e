"""
API Router
Aggregates all endpoints under the API prefix
"""
from fastapi import APIRouter

from lecture_qa.api.v1.chatbot import router as chatbot_router
from lecture_qa.api.v1.chats import router as chats_router
from lecture_qa.api.v1.documents import router as documents_router
from lecture_qa.api.v1.health import router as health_router

router = APIRouter()

router.include_router(documents_router)  # POST /process-pdf
router.include_router(chatbot_router)  # GET /chatbot/ask (SSE)
router.include_router(chats_router)  # POST /chats/, /chats/delete
router.include_router(health_router)
