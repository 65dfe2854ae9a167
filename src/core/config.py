from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # 앱 설정
    APP_NAME: str = "batch-image-studio"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "DEBUG"

    # 서버 설정 (로컬 단일 사용자)
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    SLOW_REQUEST_MS: int = 500

    # 원격 생성 모델. API_KEY는 호출 시점에 읽는다 (없으면 호출마다 ConfigurationError)
    API_KEY: str | None = None
    EDIT_MODEL: str = "gemini-2.5-flash-image"
    GENERATION_MODEL: str = "imagen-4.0-generate-001"

    # 출력 설정 저장소
    DATABASE_URL: str = "sqlite:///./studio_preferences.db"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
