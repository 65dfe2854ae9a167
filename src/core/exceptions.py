"""앱 전역 커스텀 예외 클래스.

AppException을 상속하면 전역 핸들러(error_handlers.py)가 자동으로
{"error_code": "...", "message": "..."} 형식의 JSON 응답을 생성한다.
배치 작업 안에서는 항목 경계에서 잡혀 사람이 읽을 메시지로 기록된다.
"""


class AppException(Exception):
    """앱 전역 베이스 예외.

    서브클래스에서 status_code, error_code, message를 클래스 변수로 정의하면
    전역 핸들러가 해당 값을 읽어 HTTP 응답을 생성한다.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    message: str = "Internal error"

    def __init__(self, message: str | None = None):
        if message:
            self.message = message
        super().__init__(self.message)


# --- 입력 검증 ---


class ValidationFailed(AppException):
    status_code = 400
    error_code = "VALIDATION_FAILED"
    message = "Please select images and enter a prompt."


class InvalidPreference(AppException):
    status_code = 400
    error_code = "INVALID_PREFERENCE"
    message = "Unsupported output setting"


# --- 원격 모델 ---


class ConfigurationError(AppException):
    status_code = 500
    error_code = "CONFIGURATION_ERROR"
    message = "API_KEY environment variable is not set."


class NoImageReturned(AppException):
    status_code = 502
    error_code = "NO_IMAGE_RETURNED"
    message = "No image was returned by the API."


class RemoteCallFailed(AppException):
    status_code = 502
    error_code = "REMOTE_CALL_FAILED"
    message = "The image service request failed"


# --- 후처리 ---


class TransformFailed(AppException):
    status_code = 422
    error_code = "TRANSFORM_FAILED"
    message = "Could not decode or render the image"


# --- 조회 ---


class ImageNotFound(AppException):
    status_code = 404
    error_code = "IMAGE_NOT_FOUND"
    message = "Image not found"


class ImageNotProcessed(AppException):
    status_code = 400
    error_code = "IMAGE_NOT_PROCESSED"
    message = "Image has not been edited yet"


class GeneratedImageNotFound(AppException):
    status_code = 404
    error_code = "GENERATED_IMAGE_NOT_FOUND"
    message = "Generated image not found"
