from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    app_name: str = "StudyKit"
    app_env: str = Field("dev", alias="APP_ENV")
    secret_key: str = Field("dev-secret-change-me", alias="SECRET_KEY")
    access_token_expire_minutes: int = Field(120, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    llm_model: str = Field("gpt-4o", alias="LLM_MODEL")
    llm_temperature: float = Field(0.3, alias="LLM_TEMPERATURE")
    llm_max_input_chars: int = Field(15000, alias="LLM_MAX_INPUT_CHARS")

    flashcard_count: int = Field(10, alias="FLASHCARD_COUNT")
    quiz_question_count: int = Field(10, alias="QUIZ_QUESTION_COUNT")

    upload_dir: str = Field("./uploads", alias="UPLOAD_DIR")
    max_upload_mb: int = Field(25, alias="MAX_UPLOAD_MB")
    pipeline_workers: int = Field(2, alias="PIPELINE_WORKERS")

    rate_limit_window_seconds: int = Field(60, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_max_calls: int = Field(30, alias="RATE_LIMIT_MAX_CALLS")

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
