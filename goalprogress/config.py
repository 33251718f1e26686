from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# Load .env from repo root for local development and scripts.
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, populate_by_name=True)
    local_tz: str = Field(default="UTC", alias="LOCAL_TZ")
    daily_window_days: int = Field(default=14, alias="DAILY_WINDOW_DAYS")
    monthly_window_months: int = Field(default=5, alias="MONTHLY_WINDOW_MONTHS")
    heatmap_window_months: int = Field(default=12, alias="HEATMAP_WINDOW_MONTHS")
    heatmap_intensity_factor: float = Field(default=0.25, alias="HEATMAP_INTENSITY_FACTOR")
    series_lead_days: int = Field(default=1, alias="SERIES_LEAD_DAYS")
    daily_carry_in: bool = Field(default=False, alias="DAILY_CARRY_IN")

settings = Settings()
