"""Application configuration loaded from environment variables and .env file."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Values are loaded from environment variables first,
    then from a .env file in the project root as fallback.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    DATABASE_URL: str = "sqlite:///./governance.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    FACTION_DATA_PATH: str = "governance/data/factions.json"

    # Reputation
    REPUTATION_DECAY_RATE: float = 0.1
    REPUTATION_DECAY_GRACE_DAYS: int = 7
    REPUTATION_DECAY_INTERVAL_HOURS: int = 24
    REPUTATION_HISTORY_LIMIT: int = 100

    # Guilds
    GUILD_CREATION_MIN_LEVEL: int = 1
    GUILD_DEFAULT_MAX_MEMBERS: int = 50
    GUILD_INACTIVITY_DAYS: int = 7
    GUILD_MAINTENANCE_INTERVAL_HOURS: int = 1
    OFFICER_WITHDRAW_LIMIT: int = 1000


settings = Settings()
