from pathlib import Path
from typing import Dict
from pydantic import BaseModel, Field, field_validator
import yaml

class ServiceConfig(BaseModel):
    endpoint: str = Field(default="http://localhost:8000/api/generate")
    question_timeout: float = Field(default=60.0, gt=0)
    generation_timeout: float = Field(default=90.0, gt=0)
    question_retries: int = Field(default=2, ge=0)
    generation_retries: int = Field(default=3, ge=0)
    stream_publish_interval: float = Field(default=0.1, ge=0)
    backoff_base_ms: int = Field(default=1000, ge=0)
    backoff_cap_ms: int = Field(default=8000, ge=0)
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("endpoint")
    @classmethod
    def endpoint_must_be_http(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("endpoint must be an http(s) URL")
        return value

class ChatConfig(BaseModel):
    history_limit: int = Field(default=50, gt=0)
    answer_delay: float = Field(default=0.6, ge=0)
    closing_pause: float = Field(default=1.5, ge=0)
    typing_delay: float = Field(default=0.015, ge=0)

class SessionConfig(BaseModel):
    directory: Path = Field(default=Path(".script_wizard"))
    key: str = Field(default="script-wizard-session", min_length=1)
    max_age_seconds: float = Field(default=3600.0, gt=0)
    autosave: bool = Field(default=True)

class Config(BaseModel):
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    log_level: str = Field(default="INFO")

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path):
        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
