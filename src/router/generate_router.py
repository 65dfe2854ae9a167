from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.dependencies import get_batch_service, get_studio
from service import image_service
from service.batch_service import BatchService
from service.studio import Studio
from utility.response import attachment

router = APIRouter(prefix="/api/generate", tags=["generate"])


class GenerateRequest(BaseModel):
    prompt: str
    aspect_ratio: str = "1:1"


@router.post("/")
async def generate_image(req: GenerateRequest, service: BatchService = Depends(get_batch_service)):
    result = await service.generate(req.prompt, req.aspect_ratio)
    return {"index": 0, "prompt": result.prompt, "mime_type": result.payload.mime_type}


@router.get("/")
async def list_generated(studio: Studio = Depends(get_studio)):
    """최신순."""
    return [
        {"index": i, "prompt": result.prompt, "mime_type": result.payload.mime_type}
        for i, result in enumerate(studio.generated)
    ]


@router.get("/{index}/download")
async def download_generated(index: int, studio: Studio = Depends(get_studio)):
    result = studio.get_generated(index)
    return attachment(result.payload.data, result.payload.mime_type, image_service.generated_filename(result))
