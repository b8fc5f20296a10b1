from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppFileConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    log_dir: str = "logs"
    include_tracebacks: bool = False


class FirebaseConfig(BaseModel):
    """Public web-client settings of the hosted Firebase project."""

    model_config = ConfigDict(extra="forbid")
    api_key: str = ""
    auth_domain: str = "labrats-ee791.firebaseapp.com"
    database_url: str = "https://labrats-ee791-default-rtdb.asia-southeast1.firebasedatabase.app"
    project_id: str = "labrats-ee791"
    storage_bucket: str = "labrats-ee791.firebasestorage.app"
    messaging_sender_id: str = ""
    app_id: str = ""
    request_timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    stream_read_timeout_seconds: float = Field(default=90.0, gt=0, le=3600)
    # ID tokens expire after an hour; renew well before that
    token_refresh_seconds: float = Field(default=3000.0, ge=60, le=3500)

    @field_validator("database_url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return str(v or "").rstrip("/")


class WebConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    bind_host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    session_cookie_name: str = "labrats_session"
    session_idle_timeout_seconds: int = Field(default=3600, ge=60)
    secure_cookies: bool = False
    login_attempts_per_minute: int = Field(default=10, ge=1, le=1000)
    assets_dir: str = "public"
    stream_keepalive_seconds: float = Field(default=15.0, gt=0, le=300)


class CompanionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = True
    mascot_image: str = "imgs/rat_speaking_button.png"
    title: str = "Click me for science tips!"
    clips: List[str] = Field(
        default_factory=lambda: [
            "audios/web gravity lab.wav",
            "audios/web home.wav",
            "audios/web settings.wav",
        ],
        min_length=1,
    )


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    app: AppFileConfig
    firebase: FirebaseConfig
    web: WebConfig
    companion: CompanionConfig
