from __future__ import annotations
import yaml
from pathlib import Path
from typing import Optional
from pydantic import BaseModel

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parents[1] / "config" / "settings.yaml"

class AppConfig(BaseModel):
    name: str = "School Health Records"
    environment: str = "development"
    debug: bool = False

class AuthConfig(BaseModel):
    session_ttl_hours: int = 12
    seed_admin_email: str = "admin@school.local"
    seed_admin_name: str = "School Administrator"
    seed_admin_password: str = "change-me-now"

class DBConfig(BaseModel):
    url: str

class StorageConfig(BaseModel):
    root: str = "data/documents"

class AlertsConfig(BaseModel):
    expiry_warning_days: int = 30

class LoggingConfig(BaseModel):
    level: str = "INFO"

class Settings(BaseModel):
    app: AppConfig = AppConfig()
    auth: AuthConfig = AuthConfig()
    db: DBConfig
    storage: StorageConfig = StorageConfig()
    alerts: AlertsConfig = AlertsConfig()
    logging: LoggingConfig = LoggingConfig()

    @property
    def debug(self) -> bool:
        return self.app.debug

def load_settings(path: Optional[str | Path] = None) -> Settings:
    path = Path(path) if path else DEFAULT_SETTINGS_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return Settings(
        app=AppConfig(**(data.get("app") or {})),
        auth=AuthConfig(**(data.get("auth") or {})),
        db=DBConfig(**data["db"]),
        storage=StorageConfig(**(data.get("storage") or {})),
        alerts=AlertsConfig(**(data.get("alerts") or {})),
        logging=LoggingConfig(**(data.get("logging") or {})),
    )
