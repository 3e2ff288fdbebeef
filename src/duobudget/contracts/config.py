"""Configuration contracts."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from duobudget.contracts.record import CREATED_FIELD


class DomainSpec(BaseModel):
    """Everything that distinguishes one synchronized record domain from another."""

    name: str
    collection: str
    records_key: str
    config_key: str
    order_by: str = CREATED_FIELD
    descending: bool = True
    detect_remote_changes: bool = True
    config_section: str | None = None
    default_config: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class DuoBudgetConfig(BaseModel):
    store: str = "firestore"
    project_id: str | None = None
    database: str = "(default)"
    api_key: str | None = None
    auth: str = "anonymous"
    token: str | None = None
    partition: str = "nuestra_pareja"
    config_collection: str = "config"
    backup_dir: Path = Path(".duobudget")
    poll_interval: float = Field(default=1.0, gt=0)
    grace_window: float = Field(default=2.0, ge=0)
    resync_delay: float = Field(default=1.0, ge=0)
    write_delay: float = Field(default=0.5, ge=0)
    connect_delay: float = Field(default=1.0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_store(self) -> DuoBudgetConfig:
        if self.store not in {"firestore", "memory"}:
            raise ValueError("store must be one of: firestore, memory")
        if self.store == "firestore" and not (self.project_id or "").strip():
            raise ValueError("firestore store requires a non-empty project_id")
        if not self.partition.strip():
            raise ValueError("partition must be non-empty")
        return self

    @model_validator(mode="after")
    def validate_timing(self) -> DuoBudgetConfig:
        # A polled echo of our own write arrives up to one interval late and
        # must still look recent to the origin detector.
        if self.poll_interval >= self.grace_window:
            raise ValueError("poll_interval must be smaller than grace_window")
        return self

    @model_validator(mode="after")
    def validate_auth_token(self) -> DuoBudgetConfig:
        token = (self.token or "").strip()
        if self.auth == "token":
            if not token:
                raise ValueError("token auth requires a non-empty token")
            return self
        if token:
            raise ValueError("token must be unset when auth is not 'token'")
        if self.auth not in {"anonymous", "env", "token"}:
            raise ValueError("auth must be one of: anonymous, env, token")
        if self.auth == "anonymous" and self.store == "firestore" and not (self.api_key or "").strip():
            raise ValueError("anonymous auth requires api_key")
        return self
