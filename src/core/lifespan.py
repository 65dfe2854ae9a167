from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from sqlmodel import Session

from core.config import settings
from model.database import create_db_and_tables, engine
from service.batch_service import BatchService
from service.edit_client import GeminiEditClient
from service.preference_service import load_preferences
from service.studio import Studio
from utility.logger import setup_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    # === 시작 ===
    setup_logger()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION}")

    create_db_and_tables()
    with Session(engine) as session:
        preferences = load_preferences(session)
    logger.info(f"Preferences loaded ({settings.DATABASE_URL}): {preferences.to_storage()}")

    if not settings.API_KEY:
        logger.warning("API_KEY is not set; edit and generation requests will fail")

    # 세션 상태는 프로세스 메모리에만 있다
    studio = Studio(preferences=preferences)
    app.state.studio = studio
    edit_client = GeminiEditClient()
    app.state.batch_service = BatchService(studio, edit_client)

    yield

    # === 종료 ===
    logger.info(f"Shutting down ({len(studio.images)} image(s) discarded)")
    await edit_client.aclose()
