"""Application settings loaded from environment variables via pydantic-settings.

Values resolve in priority order: real environment variables, then the
``.env`` file at the project root, then the defaults below.  Field
``openai_api_key`` maps to ``OPENAI_API_KEY`` and so on.

Tuning knobs that are not secrets (chunk sizes, retrieval budgets) live in
``config/config.yaml`` instead; see :mod:`docqa.config.loader`.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docqa deployment settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === OpenAI ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible gateway; empty means api.openai.com
    openai_chat_model: str = "gpt-3.5-turbo"
    openai_embedding_model: str = "text-embedding-ada-002"
    embedding_dimension: int = 0  # 0 = infer from the embedding model name

    # === Supabase (identity, storage, pgvector via PostgREST) ===
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_storage_bucket: str = "notes"
    documents_table: str = "documents"
    match_function: str = "match_documents"

    # === Document store selection ===
    vector_store: str = "supabase"  # "supabase" or "chromadb"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "docqa_documents"

    # === Ingestion ===
    temp_dir: str = ""  # empty = /tmp in production, ./temp otherwise

    # === Access control ===
    cors_allowed_origins: str = "https://ntoa.vercel.app"  # comma-separated
    auth_dev_bypass: bool = False
    scope_documents_per_user: bool = False

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def get_cors_origins(self) -> list[str]:
        """Return the configured CORS allow-list as a list of origins."""
        return [o.strip().rstrip("/") for o in self.cors_allowed_origins.split(",") if o.strip()]

    def resolve_temp_dir(self) -> str:
        """Return the directory used for scoped download files."""
        if self.temp_dir:
            return self.temp_dir
        return "/tmp" if self.is_production else "./temp"
