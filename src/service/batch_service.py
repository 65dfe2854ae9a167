"""배치 편집 오케스트레이션.

선택된 이미지마다 원격 호출 → (편집만) 후처리 → 결과 저장 파이프라인을
독립 태스크로 동시에 띄우고, 모두 정착할 때까지 기다린다.

- 한 항목의 실패는 그 항목 경계에서 잡아 로그와 에러 메시지로 남긴다.
  다른 항목은 계속 진행되고, 실패한 항목의 이전 결과는 그대로 유지된다.
- 처리 플래그는 성공/실패와 무관하게 항목마다 정확히 한 번 False가 된다.
- 재시도, 동시 실행 제한, 취소는 없다.
"""

import functools
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from core.exceptions import AppException, ValidationFailed
from model.image import GeneratedResult, Payload, SourceImage
from model.preference import OutputPreferences
from processor.async_runner import run_blocking, run_settled
from processor.operations import transform
from service.edit_client import GENERATION_ASPECT_RATIOS, ImageEditClient
from service.studio import Studio
from utility.timer import timer

PRESET_PROMPTS = {
    "standard": (
        "Apply professional corrections to the uploaded image. Improve the lighting, "
        "adjust the contrast and balance the colours for a polished look. Apply a "
        "shallow depth of field (bokeh) as if the photo had been taken with an 80mm "
        "lens at f/1.4. Keep the main subject 100% sharp while the background is "
        "softly blurred, with a gradual transition and no hard edges. Preserve natural "
        "skin textures and the sharpness of the eyes."
    ),
    "lens-80mm": (
        "Re-render this photo as if it had been shot with an 80mm lens at f/1.4: "
        "keep the subject in crisp focus and melt the background into smooth, "
        "creamy bokeh without changing the composition."
    ),
    "sketch": (
        "Convert to a hyper-detailed pencil and charcoal drawing, with realistic "
        "shading and graphite texture on paper"
    ),
}


class BatchOperation(str, Enum):
    EDIT = "edit"
    REMOVE_BACKGROUND = "remove-background"


class ItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # 원본이 없거나 처리 중 삭제됨


@dataclass(frozen=True)
class ItemOutcome:
    status: ItemStatus
    error: str | None = None


@dataclass(frozen=True)
class BatchPlan:
    operation: BatchOperation
    target_ids: tuple[str, ...]
    preferences: OutputPreferences
    prompt: str | None = None


@dataclass
class BatchReport:
    operation: BatchOperation
    target_ids: list[str]
    succeeded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def resolve_prompt(prompt: str | None = None, preset: str | None = None) -> str:
    """자유 텍스트가 있으면 그것을, 없으면 프리셋 지시문을 쓴다."""
    if prompt and prompt.strip():
        return prompt
    if preset:
        if preset not in PRESET_PROMPTS:
            raise ValidationFailed(f"Unknown preset: {preset}")
        return PRESET_PROMPTS[preset]
    return ""


def _failure_message(operation: BatchOperation, source: SourceImage, exc: Exception) -> str:
    action = "edit image" if operation is BatchOperation.EDIT else "remove background from image"
    detail = f" {exc.message}" if isinstance(exc, AppException) else ""
    return f"Failed to {action} {source.filename}.{detail}"


class BatchService:
    def __init__(self, studio: Studio, client: ImageEditClient):
        self.studio = studio
        self.client = client

    # --- 검증 + 디스패치 준비 (네트워크 호출 없음) ---

    def _reject(self, message: str) -> ValidationFailed:
        self.studio.error = message
        return ValidationFailed(message)

    def start_edit(self, prompt: str | None, preset: str | None = None) -> BatchPlan:
        try:
            prompt = resolve_prompt(prompt, preset)
        except ValidationFailed as e:
            raise self._reject(e.message) from e
        targets = self.studio.edit_targets()
        if not targets or not prompt or not prompt.strip():
            raise self._reject("Please select images and enter a prompt.")
        return self._start(BatchOperation.EDIT, targets, prompt)

    def start_remove_background(self) -> BatchPlan:
        # 편집과 달리 "선택 없음 = 전체" 기본값이 없다
        targets = self.studio.selected_ids()
        if not targets:
            raise self._reject("Please select the images to remove the background from.")
        return self._start(BatchOperation.REMOVE_BACKGROUND, targets)

    def _start(self, operation: BatchOperation, targets: list[str], prompt: str | None = None) -> BatchPlan:
        plan = BatchPlan(
            operation=operation,
            target_ids=tuple(targets),
            preferences=self.studio.preferences,
            prompt=prompt,
        )
        self.studio.begin_run(targets)
        logger.info(f"{operation.value} batch dispatched: {len(targets)} image(s)")
        return plan

    # --- 실행 ---

    async def execute(self, plan: BatchPlan) -> BatchReport:
        """모든 항목이 정착할 때까지 기다린 뒤 배치 상태를 정리한다."""
        report = BatchReport(operation=plan.operation, target_ids=list(plan.target_ids))
        try:
            with timer(f"{plan.operation.value} batch ({len(plan.target_ids)})"):
                outcomes = await run_settled(plan.target_ids, functools.partial(self._run_item, plan))
        finally:
            self.studio.end_run(clear_selection=plan.operation is BatchOperation.EDIT)

        for image_id, outcome in outcomes.items():
            if isinstance(outcome, BaseException):
                # _run_item은 예외를 밖으로 내보내지 않는다. 취소 등으로만 도달
                report.failed[image_id] = str(outcome) or type(outcome).__name__
            elif outcome.status is ItemStatus.SUCCEEDED:
                report.succeeded.append(image_id)
            elif outcome.status is ItemStatus.SKIPPED:
                report.skipped.append(image_id)
            else:
                report.failed[image_id] = outcome.error

        logger.info(
            f"{plan.operation.value} batch settled: {len(report.succeeded)} ok, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        return report

    async def run_edit(self, prompt: str | None, preset: str | None = None) -> BatchReport:
        return await self.execute(self.start_edit(prompt, preset))

    async def run_remove_background(self) -> BatchReport:
        return await self.execute(self.start_remove_background())

    async def _run_item(self, plan: BatchPlan, image_id: str) -> ItemOutcome:
        source = self.studio.images.get(image_id)
        try:
            if source is None:
                logger.debug(f"Skipping {image_id}: no longer loaded")
                return ItemOutcome(ItemStatus.SKIPPED)

            payload = await self._process(plan, source)
            if not self.studio.store_result(image_id, payload):
                logger.debug(f"Discarding result for {image_id}: image was removed")
                return ItemOutcome(ItemStatus.SKIPPED)
            return ItemOutcome(ItemStatus.SUCCEEDED)
        except Exception as e:
            logger.exception(f"{plan.operation.value} failed for {image_id} ({source.filename})")
            message = _failure_message(plan.operation, source, e)
            self.studio.record_item_error(image_id, message)
            return ItemOutcome(ItemStatus.FAILED, message)
        finally:
            self.studio.finish_item(image_id)

    async def _process(self, plan: BatchPlan, source: SourceImage) -> Payload:
        if plan.operation is BatchOperation.REMOVE_BACKGROUND:
            return await self.client.remove_background(source.payload)

        edited = await self.client.prompt_edit(source.payload, plan.prompt)
        prefs = plan.preferences
        return await run_blocking(
            transform,
            edited,
            aspect_ratio=prefs.crop_aspect_ratio,
            longest_edge=prefs.longest_edge,
            fmt=prefs.output_format,
            dpi=prefs.dpi,
        )

    # --- 텍스트 → 이미지 (단일 호출) ---

    async def generate(self, prompt: str | None, aspect_ratio: str = "1:1") -> GeneratedResult:
        if not prompt or not prompt.strip():
            raise self._reject("Please enter a prompt to generate an image.")
        if aspect_ratio not in GENERATION_ASPECT_RATIOS:
            raise self._reject(
                f"Unsupported aspect ratio {aspect_ratio!r}; choose one of {', '.join(GENERATION_ASPECT_RATIOS)}."
            )

        self.studio.begin_run([])
        try:
            with timer("generate"):
                payload = await self.client.generate_from_text(prompt, aspect_ratio)
        except Exception:
            logger.exception("Image generation failed")
            self.studio.error = "An error occurred while generating the image. Please try again."
            raise
        finally:
            self.studio.end_run()

        result = GeneratedResult(payload=payload, prompt=prompt)
        self.studio.add_generated(result)
        return result
