# filegate/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "auto"
    aws_s3_bucket_name: str = ""
    aws_endpoint_url: str = ""

    # Cloudflare account id, used to derive the R2 endpoint when no explicit
    # endpoint url is configured
    cf_account_id: str = ""

    database_url: str = "sqlite:///./filegate.db"

    # Enables the listing routes under /auth/users, /auth/sessions and
    # /anonymous/list
    dev: bool = False

    multipart_threshold: int = 100 << 20  # 100 MiB
    multipart_part_size: int = 8 << 20  # 8 MiB
    object_id_length: int = 10

    geolocation_enabled: bool = True
    geolocation_url: str = "https://ipinfo.io/{ip}/json"
    geolocation_timeout: float = 3.0

    log_level: str = "INFO"

    # Tell pydantic-settings to load from .env at project root
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore any extra stuff in .env
    )

    @property
    def s3_endpoint_url(self) -> str | None:
        if self.aws_endpoint_url:
            return self.aws_endpoint_url
        if self.cf_account_id:
            return f"https://{self.cf_account_id}.r2.cloudflarestorage.com"
        return None


@lru_cache
def get_settings() -> Settings:
    return Settings()
