from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Required from environment (.env / deployment secrets)
    database_url: str
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12  # 12 hours
    app_env: str = "development"  # development, staging, production

    # CORS origins as comma-separated values
    # Example: "https://admin.example.com,https://directory.example.com"
    cors_allow_origins: str = "http://localhost:3000"

    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # Values applied to CSV rows that leave these columns empty
    import_default_language: str = "English"
    import_default_status: str = "published"
    import_default_tag_type: str = "contextual"

    # A tag used across this many top-level categories is suggested as universal
    tag_universal_min_categories: int = 3

    # Image storage (S3) and extraction
    aws_region: str = "us-west-2"
    s3_bucket: str = ""
    s3_public_base_url: str = ""  # e.g. "https://cdn.example.com"; defaults to the bucket URL
    image_fetch_timeout_seconds: float = 15.0
    image_max_mb: int = 5

    # Upload and request guards
    max_csv_upload_mb: int = 10
    max_image_upload_mb: int = 5
    rate_limit_login_per_min: int = 10
    rate_limit_csv_upload_per_min: int = 5

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
