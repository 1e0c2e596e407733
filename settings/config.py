from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Ledger storage (single JSON document: cards, groups, bills, processed ids)
    LEDGER_PATH: str = "/tmp/billsync/ledger.json"

    # Inbox window read on every sync
    SMS_DAYS_BACK: int = 60

    # LLM providers
    OPENAI_API_KEY: str | None = None
    # Optional OpenAI-compatible endpoint (Groq, Perplexity, local gateway)
    LLM_BASE_URL: str | None = None
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Console logging for the API and CLI
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

settings = Settings()
