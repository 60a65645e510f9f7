from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./locations.db"
    database_url_sync: str = "sqlite:///./locations.db"

    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    nominatim_user_agent: str = "Tacitus-App/1.0"
    geocoder_timeout: float = 15.0

    wikipedia_api_url: str = "https://en.wikipedia.org/w/api.php"
    wikipedia_article_base: str = "https://en.wikipedia.org/wiki/"
    wikipedia_timeout: float = 15.0
    geosearch_radius_m: int = 10_000
    article_limit: int = 10

    match_tolerance_deg: float = 0.1

    llm_backend: str = "ollama"
    ollama_api_url: str = "http://localhost:11434/api/chat"
    ollama_model: str = "mistral"
    llm_temperature: float = 0.7
    llm_timeout: float = 60.0
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    answer_max_tokens: int = 1024

    cors_origins: str = "*"
    auth_enabled: bool = False
    api_keys: str = ""
    run_migrations: bool = True
    log_format: str = "text"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
