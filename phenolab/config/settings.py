from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can come from:
    - docker-compose.yml environment section
    - .env file
    - System environment

    Variable names match docker-compose conventions:
    - POSTGRES_HOST, POSTGRES_PORT, etc. (document + relational stores)
    - NEO4J_URI, NEO4J_USER, NEO4J_PASSWORD (graph store)
    """

    # Environment
    environment: str = "development"

    # PostgreSQL (document store + relational store)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "phenolab_user"
    postgres_password: str = "phenolab_pass"
    postgres_db: str = "phenolab"
    postgres_min_pool: int = 2
    postgres_max_pool: int = 10
    documents_schema: str = "documents"
    database_url: Optional[str] = None

    # Neo4j (graph store)
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "phenolab_neo4j_pass"
    neo4j_database: str = "neo4j"

    # Resource identifiers
    base_uri: str = "http://www.phenome-fppn.fr/m3p"
    id_max_attempts: int = 5

    # Pagination. page_size=0 and every fan-out read use max_page_size.
    default_page_size: int = 20
    max_page_size: int = 5000

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra env vars

    @field_validator('base_uri', mode='after')
    @classmethod
    def strip_trailing_slash(cls, v):
        """Identifiers are built as base_uri + '/id/...'"""
        return v.rstrip('/')

    @field_validator('max_page_size', 'default_page_size', mode='after')
    @classmethod
    def positive_page_size(cls, v):
        if v <= 0:
            raise ValueError("page sizes must be positive")
        return v

    @field_validator('database_url', mode='before')
    @classmethod
    def construct_database_url(cls, v, info):
        """Construct database URL from components if not explicitly set"""
        if v:
            return v

        data = info.data
        host = data.get('postgres_host', 'localhost')
        port = data.get('postgres_port', 5432)
        user = data.get('postgres_user', 'phenolab_user')
        password = data.get('postgres_password', 'phenolab_pass')
        db = data.get('postgres_db', 'phenolab')

        return f"postgresql://{user}:{password}@{host}:{port}/{db}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
