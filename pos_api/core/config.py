from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    # DB
    DATABASE_URL: str

    # Admin auth for the back-office API
    ADMIN_KEY: str

    LOG_LEVEL: str = "INFO"

    # 1 = allow orders whose total went below zero (discounts > base + surcharges)
    ALLOW_NEGATIVE_TOTAL: int = 0

    # Optional: address -> coordinates (DaData-compatible suggest API)
    GEOCODER_URL: str = "https://suggestions.dadata.ru/suggestions/api/4_1/rs/suggest/address"
    GEOCODER_TOKEN: str | None = None

    # Optional: voice order parsing (OpenAI-compatible chat completions)
    AI_BASE_URL: str | None = None          # e.g. https://api.openai.com/v1
    AI_API_KEY: str | None = None
    AI_MODEL: str = "gpt-4o-mini"
    AI_TEMPERATURE: float = 0.2
    AI_MAX_TOKENS: int = 800

    # Demo convenience
    CREATE_TABLES: int = 0  # 1 = create_all on startup

settings = Settings()
