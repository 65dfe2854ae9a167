from fastapi import APIRouter, Depends, UploadFile
from pydantic import BaseModel

from core.dependencies import get_studio
from service import image_service
from service.studio import Studio
from utility.response import attachment

router = APIRouter(prefix="/api/images", tags=["images"])


class DataUrlUpload(BaseModel):
    data_url: str
    filename: str = "image"


def _describe(studio: Studio, image_id: str) -> dict:
    image = studio.images[image_id]
    result = studio.results.get(image_id)
    return {
        "id": image.id,
        "filename": image.filename,
        "mime_type": image.payload.mime_type,
        "created_at": image.created_at.isoformat(),
        "selected": image_id in studio.selection,
        "processing": studio.processing.get(image_id, False),
        "edited": result is not None,
        "edited_mime_type": result.payload.mime_type if result else None,
    }


@router.post("/upload")
async def upload_images(files: list[UploadFile], studio: Studio = Depends(get_studio)):
    images = await image_service.ingest_files(files)
    studio.add_images(images)
    return [_describe(studio, image.id) for image in images]


@router.post("/upload-data-url")
async def upload_data_url(req: DataUrlUpload, studio: Studio = Depends(get_studio)):
    image = image_service.ingest_data_url(req.filename, req.data_url)
    if image is None:
        return []
    studio.add_images([image])
    return [_describe(studio, image.id)]


@router.get("/")
async def list_images(studio: Studio = Depends(get_studio)):
    return [_describe(studio, image_id) for image_id in studio.images]


@router.post("/selection/all")
async def select_all(studio: Studio = Depends(get_studio)):
    studio.select_all()
    return {"selection": studio.selected_ids()}


@router.delete("/selection")
async def clear_selection(studio: Studio = Depends(get_studio)):
    studio.clear_selection()
    return {"selection": []}


@router.get("/{image_id}")
async def get_image(image_id: str, studio: Studio = Depends(get_studio)):
    image = studio.get_image(image_id)
    return {**_describe(studio, image_id), "preview_url": image.preview_url}


@router.post("/{image_id}/select")
async def toggle_selection(image_id: str, studio: Studio = Depends(get_studio)):
    selected = studio.toggle_selection(image_id)
    return {"id": image_id, "selected": selected}


@router.get("/{image_id}/download")
async def download_image(image_id: str, studio: Studio = Depends(get_studio)):
    result = studio.get_result(image_id)
    filename = image_service.edited_filename(result, studio.images[image_id])
    return attachment(result.payload.data, result.payload.mime_type, filename)


@router.delete("/{image_id}")
async def delete_image(image_id: str, studio: Studio = Depends(get_studio)):
    studio.remove_image(image_id)
    return {"detail": "Deleted"}
