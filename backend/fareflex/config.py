from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Amadeus
    amadeus_client_id: str = ""
    amadeus_client_secret: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"
    token_refresh_skew_seconds: int = 30
    http_timeout_seconds: float = 30.0

    # Anthropic
    anthropic_api_key: str = ""

    # OpenAI
    openai_api_key: str = ""

    # Search defaults
    default_currency: str = "USD"
    primary_max_results: int = 50
    combo_max_results: int = 200

    # Primary phase
    primary_attempts: int = 2
    primary_timeout_seconds: float = 9.5
    primary_backoff_seconds: float = 0.5

    # Expanding phase
    combo_timeout_seconds: float = 7.5
    combo_concurrency: int = 4
    max_combos: int = 12

    # Downgrading phase
    downgrade_timeout_seconds: float = 3.75

    # Whole request guard at the HTTP layer
    search_request_timeout_seconds: float = 60.0

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
