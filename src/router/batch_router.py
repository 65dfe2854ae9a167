from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel

from core.dependencies import get_batch_service, get_studio
from service.batch_service import PRESET_PROMPTS, BatchPlan, BatchService
from service.studio import Studio

router = APIRouter(prefix="/api/batch", tags=["batch"])


class EditRequest(BaseModel):
    prompt: str | None = None
    preset: str | None = None


def _accepted(plan: BatchPlan) -> dict:
    return {"operation": plan.operation.value, "target_ids": list(plan.target_ids)}


# 검증은 요청 안에서 끝내고 (실패 시 400, 원격 호출 없음), 배치 자체는 응답 후에 돈다.
# 진행 상황은 /status로 확인한다.


@router.post("/edit", status_code=202)
async def edit_images(
    req: EditRequest,
    background_tasks: BackgroundTasks,
    service: BatchService = Depends(get_batch_service),
):
    plan = service.start_edit(req.prompt, req.preset)
    background_tasks.add_task(service.execute, plan)
    return _accepted(plan)


@router.post("/remove-background", status_code=202)
async def remove_background(
    background_tasks: BackgroundTasks,
    service: BatchService = Depends(get_batch_service),
):
    plan = service.start_remove_background()
    background_tasks.add_task(service.execute, plan)
    return _accepted(plan)


@router.get("/status")
async def batch_status(studio: Studio = Depends(get_studio)):
    return studio.status()


@router.get("/presets")
def list_presets():
    return PRESET_PROMPTS
