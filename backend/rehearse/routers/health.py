from fastapi import APIRouter, Depends

from rehearse.core.config import AppConfig
from rehearse.routers.deps import get_session_manager
from rehearse.services.session_manager import SessionManager

router = APIRouter()


@router.get("/")
async def root():
    return {"message": "RehearseAI API is running"}


@router.get("/health")
async def health_check(manager: SessionManager = Depends(get_session_manager)):
    config: AppConfig = manager.config
    return {
        "status": "healthy",
        "supabase_configured": not config.is_mock,
        "openai_configured": config.openai_configured,
        "version": "0.1.0",
    }
