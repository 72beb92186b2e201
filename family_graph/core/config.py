from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    APP_NAME: str = "FamilyGraphAPI"
    APP_ENV: str = "dev"
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "info"
    LOG_JSON: bool = False

    APP_CORS_ORIGINS: str = "http://localhost:3000"
    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [o.strip() for o in self.APP_CORS_ORIGINS.split(",") if o.strip()]

    # Neo4j
    NEO4J_URI: str = "bolt://localhost:7687"
    NEO4J_USER: str = "neo4j"
    NEO4J_PASSWORD: str = "neo4j"

    # Traversal limits
    CONNECTION_MAX_DEPTH: int = 20
    CONNECTION_MAX_PATHS: int = 3
    COMMON_ANCESTOR_LIMIT: int = 5
    SEARCH_DEFAULT_DEPTH: int = 3
    SEARCH_MAX_DEPTH: int = 10
    # None disables the per-call deadline
    TRAVERSAL_TIMEOUT_SECONDS: Optional[float] = None

    # Phone numbers without a country code are assumed to be Indian
    DEFAULT_COUNTRY_CODE: str = "91"

settings = Settings()
