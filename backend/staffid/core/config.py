import sys

from pydantic_settings import BaseSettings

_ENV_FILE = None if "pytest" in sys.modules else ".env"


class Settings(BaseSettings):
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    COSMOS_DB_ENDPOINT: str = ""
    COSMOS_DB_KEY: str = ""
    COSMOS_DB_DATABASE: str = "hr-admin-db"
    COSMOS_DB_ORGANIZATIONS_CONTAINER: str = "organizations"
    COSMOS_DB_EMPLOYEES_CONTAINER: str = "employees"
    COSMOS_DB_RESERVATIONS_CONTAINER: str = "employeeIdReservations"

    DEFAULT_EMPLOYEE_ID_FORMAT: str = "EMP{YYYY}-{###}"
    ID_MAX_ATTEMPTS: int = 100
    ID_RESERVATION_RETRIES: int = 3
    SYNC_DELAY_SECONDS: float = 2.0

    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    model_config = {
        "env_file": _ENV_FILE,
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


settings = Settings()
