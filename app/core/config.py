from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "FormForge"

    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    sql_echo: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:5173"]

    # PostgreSQL variables for Docker
    postgres_user: str = ""
    postgres_password: str = ""
    postgres_db: str = ""

    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
