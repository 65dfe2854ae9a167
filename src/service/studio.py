"""세션 상태 저장소.

업로드된 이미지, 편집 결과, 생성 결과, 선택 집합, 항목별 처리 플래그,
배치 진행 여부, 배치 단위 에러 메시지(단일 슬롯)를 한 객체가 소유한다.
모든 변경은 이 클래스의 메서드를 거친다. UI 없이 단위 테스트할 수 있다.

이벤트 루프 하나에서만 접근하므로 락은 없다. 결과는 원본 id별로 저장되므로
동시에 끝나는 항목끼리 같은 슬롯을 덮어쓰지 않는다. 단, 배치 에러 메시지는
마지막에 실패한 항목의 메시지가 남는다.
"""

from dataclasses import dataclass, field

from core.exceptions import GeneratedImageNotFound, ImageNotFound, ImageNotProcessed
from model.image import GeneratedResult, Payload, ProcessedResult, SourceImage
from model.preference import OutputPreferences


@dataclass
class Studio:
    preferences: OutputPreferences = field(default_factory=OutputPreferences)
    images: dict[str, SourceImage] = field(default_factory=dict)
    results: dict[str, ProcessedResult] = field(default_factory=dict)
    generated: list[GeneratedResult] = field(default_factory=list)
    selection: set[str] = field(default_factory=set)
    processing: dict[str, bool] = field(default_factory=dict)
    error: str | None = None
    item_errors: dict[str, str] = field(default_factory=dict)
    active_runs: int = 0
    in_flight: dict[str, int] = field(default_factory=dict)

    @property
    def is_loading(self) -> bool:
        return self.active_runs > 0

    # --- 원본 이미지 ---

    def add_images(self, images: list[SourceImage]) -> None:
        for image in images:
            self.images[image.id] = image

    def get_image(self, image_id: str) -> SourceImage:
        image = self.images.get(image_id)
        if image is None:
            raise ImageNotFound(f"Image not found: {image_id}")
        return image

    def remove_image(self, image_id: str) -> None:
        """원본과 함께 편집 결과, 선택, 처리 플래그도 지운다."""
        self.get_image(image_id)
        del self.images[image_id]
        self.results.pop(image_id, None)
        self.selection.discard(image_id)
        self.processing.pop(image_id, None)
        self.in_flight.pop(image_id, None)
        self.item_errors.pop(image_id, None)

    # --- 선택 ---

    def toggle_selection(self, image_id: str) -> bool:
        self.get_image(image_id)
        if image_id in self.selection:
            self.selection.discard(image_id)
            return False
        self.selection.add(image_id)
        return True

    def select_all(self) -> None:
        self.selection = set(self.images)

    def clear_selection(self) -> None:
        self.selection = set()

    def selected_ids(self) -> list[str]:
        """업로드 순서대로 정렬한 선택 id."""
        ordered = [image_id for image_id in self.images if image_id in self.selection]
        stale = sorted(self.selection - set(ordered))
        return ordered + stale

    def edit_targets(self) -> list[str]:
        """선택이 없으면 업로드된 전체 이미지가 편집 대상이다."""
        return self.selected_ids() or list(self.images)

    # --- 결과 ---

    def store_result(self, image_id: str, payload: Payload) -> bool:
        """원본 id 기준 insert-or-replace. 그 사이 원본이 삭제됐으면 버린다."""
        if image_id not in self.images:
            return False
        self.results[image_id] = ProcessedResult(original_id=image_id, payload=payload)
        return True

    def get_result(self, image_id: str) -> ProcessedResult:
        self.get_image(image_id)
        result = self.results.get(image_id)
        if result is None:
            raise ImageNotProcessed
        return result

    def add_generated(self, result: GeneratedResult) -> None:
        self.generated.insert(0, result)

    def get_generated(self, index: int) -> GeneratedResult:
        if not 0 <= index < len(self.generated):
            raise GeneratedImageNotFound
        return self.generated[index]

    # --- 실행 상태 ---

    def begin_run(self, image_ids: list[str]) -> None:
        self.error = None
        self.item_errors = {}
        self.active_runs += 1
        for image_id in image_ids:
            self.in_flight[image_id] = self.in_flight.get(image_id, 0) + 1
            self.processing[image_id] = True

    def finish_item(self, image_id: str) -> None:
        """겹친 배치가 같은 id를 처리 중이면 마지막 호출이 끝날 때까지 플래그를 유지한다."""
        remaining = self.in_flight.get(image_id, 0) - 1
        if remaining > 0:
            self.in_flight[image_id] = remaining
            return
        self.in_flight.pop(image_id, None)
        if image_id in self.processing:
            self.processing[image_id] = False

    def record_item_error(self, image_id: str, message: str) -> None:
        self.item_errors[image_id] = message
        self.error = message

    def end_run(self, clear_selection: bool = False) -> None:
        self.active_runs = max(0, self.active_runs - 1)
        if clear_selection:
            self.clear_selection()

    def status(self) -> dict:
        return {
            "is_loading": self.is_loading,
            "processing": {k: v for k, v in self.processing.items() if v},
            "selection": self.selected_ids(),
            "edit_target_count": len(self.edit_targets()),
            "error": self.error,
            "item_errors": dict(self.item_errors),
        }
