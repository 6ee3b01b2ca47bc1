from fastapi import APIRouter
from paperlenz.api.v1 import auth, papers, analysis, chat

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(analysis.router, tags=["analysis"])
router.include_router(papers.router, prefix="/papers", tags=["papers"])
router.include_router(chat.router, prefix="/chat", tags=["chat"])
