from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .markets import ALT_NBA_PLAYER_PROP_MARKETS

BASE_DIR = Path(__file__).resolve().parent.parent


def _default_db_url() -> str:
    return f"sqlite:///{BASE_DIR}/data/props.db"


def _to_list(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [s.strip() for s in str(value).split(",") if s.strip()]


class Settings(BaseSettings):
    # --- API ---
    # Empty key is allowed so the grouping code can be used without a live
    # environment; the client refuses to send requests without one.
    ODDS_API_KEY: str = ""
    ODDS_API_HOST: str = "https://api.the-odds-api.com"
    ODDS_API_TIMEOUT: float = 15.0
    SPORT_KEY: str = "basketball_nba"
    # Keep these as comma-separated strings in .env to avoid JSON decoding issues
    ODDS_API_REGIONS: str = "us"
    ODDS_API_BOOKMAKERS: str = ""
    TARGET_MARKETS: str = ",".join(ALT_NBA_PLAYER_PROP_MARKETS)

    # --- DATABASE ---
    DATABASE_URL: str = _default_db_url()
    UPSERT_BATCH_SIZE: int = 500

    # --- RUN WINDOW ---
    EVENTS_LOOKAHEAD_HOURS: float = 48
    EVENTS_LOOKBACK_HOURS: float = 2
    MAX_EVENTS_PER_RUN: int = 30

    # --- POLICY ---
    # False drops lines that are missing either the Over or the Under price.
    KEEP_ONE_SIDED_LINES: bool = False

    # --- DASHBOARD ---
    PPP_PRICE: int = -114
    DASHBOARD_TIMEZONE: str = "America/New_York"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _default_database_url(cls, v):
        # If .env contains an empty DATABASE_URL, fall back to the default
        if v is None or (isinstance(v, str) and v.strip() == ""):
            return _default_db_url()
        return v

    @field_validator("UPSERT_BATCH_SIZE", "MAX_EVENTS_PER_RUN")
    @classmethod
    def _positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def regions(self) -> List[str]:
        return _to_list(self.ODDS_API_REGIONS)

    @property
    def bookmakers(self) -> List[str]:
        return _to_list(self.ODDS_API_BOOKMAKERS)

    @property
    def markets(self) -> List[str]:
        return _to_list(self.TARGET_MARKETS)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
