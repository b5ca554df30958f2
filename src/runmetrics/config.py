from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"
    max_upload_bytes: int = 20 * 1024 * 1024
    lap_distance_km: float = 1.0  # 1.609344 for mile splits
    elevation_smoothing_window: int = 5
    elevation_threshold_m: float = 0.5

    class Config:
        env_prefix = "RUNMETRICS_"
        env_file = ".env"
        env_file_encoding = "utf-8"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
