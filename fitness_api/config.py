from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/fitness"
    create_schema_on_startup: bool = False

    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    # username -> password, e.g. WHITELISTED_USERS='{"alice": "secret"}'
    whitelisted_users: dict[str, str] = {}
    whitelisted_admins: dict[str, str] = {}

    cors_allowed_origins: list[str] = ["*"]

    # Exercise catalog paging
    default_page_size: int = 20
    max_page_size: int = 100
    search_result_limit: int = 5
    search_min_query_length: int = 2

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
