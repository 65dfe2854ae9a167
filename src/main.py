import uvicorn
from fastapi import FastAPI

from core.config import settings
from core.error_handlers import app_exception_handler
from core.exceptions import AppException
from core.lifespan import lifespan
from core.middleware import RequestLoggingMiddleware
from router.batch_router import router as batch_router
from router.generate_router import router as generate_router
from router.image_router import router as image_router
from router.preferences_router import router as preferences_router
import model.preference  # noqa: F401  테이블 등록

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Batch image editing, background removal and text-to-image generation",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_exception_handler(AppException, app_exception_handler)

app.include_router(image_router)
app.include_router(batch_router)
app.include_router(generate_router)
app.include_router(preferences_router)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "api_key_configured": bool(settings.API_KEY),
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        access_log=False,
    )
