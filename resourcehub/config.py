from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # .env 里会出现的字段
    secret_key: str = "dev_secret"
    access_token_expire_minutes: int = 120
    auth_cookie_name: str = "access_token"

    seed_demo_data: bool = True
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
