import os
from datetime import date

from dotenv import load_dotenv

load_dotenv()


class Settings:
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "hr_admin")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "hr_pass")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "hr_db")
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")

    APP_SECRET_KEY: str = os.getenv("APP_SECRET_KEY", "CHANGE_ME")
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@example.com")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "admin123")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # lowest effective date a job-history entry may carry
    MIN_EFFECTIVE_DATE: date = date.fromisoformat(os.getenv("MIN_EFFECTIVE_DATE", "1900-01-01"))
    FIRST_EMPLOYEE_NUMBER: int = int(os.getenv("FIRST_EMPLOYEE_NUMBER", "1001"))

    # open staging forms nobody touched for this long are purged
    STAGED_FORM_TTL_HOURS: int = int(os.getenv("STAGED_FORM_TTL_HOURS", "24"))

    @property
    def DATABASE_URL(self) -> str:
        explicit = os.getenv("DATABASE_URL")
        if explicit:
            return explicit

        # SQLite mode (no Postgres / no Docker)
        sqlite_path = os.getenv("SQLITE_PATH", "hr_console.db")
        use_sqlite = os.getenv("USE_SQLITE", "1") == "1"

        if use_sqlite:
            return f"sqlite+aiosqlite:///./{sqlite_path}"

        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()
