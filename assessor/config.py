from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./data/db.sqlite3"
    aws_region: str = "us-east-1"
    storage_backend: str = "s3"  # "s3" or "local"
    storage_bucket: str = ""
    local_storage_root: str = "./data/blobs"
    uploads_table_name: str = ""
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_model: str = ""  # empty = assessment step fails, upload still succeeds
    max_upload_size_bytes: int = 10 * 1024 * 1024  # 10MB
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
