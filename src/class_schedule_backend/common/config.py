'''
Holds all the configurations
'''
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    # Application Metadata
    APP_NAME: str = "Class Schedule Backend"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Recurring class schedules and their materialized sessions."
    TEST_MODE: bool = False
    LOG_LEVEL: str = "INFO"

    # Database URL
    DATABASE_URL_PROD: str = "postgresql+psycopg://localhost/class_schedule"
    DATABASE_URL_TEST: str = "sqlite+aiosqlite://"
    @property
    def database_url(self) -> str:
        """
        Dynamically returns the correct database URL based on the test_mode flag.
        """
        if self.TEST_MODE:
            return self.DATABASE_URL_TEST
        return self.DATABASE_URL_PROD

    # Creates the tables on startup (tests and local sqlite only, prod uses migrations)
    AUTO_CREATE_TABLES: bool = False

    # Schedule engine
    MATERIALIZE_WINDOW_WEEKS: int = 6
    DEFAULT_TIMEZONE: str = "UTC"
    REMINDER_LOOKAHEAD_HOURS: int = 24

    BACKEND_CORS_ORIGINS: list[str] = []

    class Config:
        env_file = ".env" # automatically loads the .env

# Create a single, importable instance of the settings
settings = Settings()
