from __future__ import annotations

import logging
import os
from dataclasses import dataclass

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    mlflow_tracking_uri: str = "sqlite:///mlflow.db"
    deploy_url: str = "http://localhost:8000"
    deploy_username: str = "admin"
    deploy_password: str = "admin"
    token_ttl_seconds: int = 3600
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Configurable via env vars (Docker / CI friendly)."""
        return cls(
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", cls.mlflow_tracking_uri),
            deploy_url=os.getenv("DEPLOY_URL", cls.deploy_url),
            deploy_username=os.getenv("DEPLOY_USERNAME", cls.deploy_username),
            deploy_password=os.getenv("DEPLOY_PASSWORD", cls.deploy_password),
            token_ttl_seconds=int(os.getenv("DEPLOY_TOKEN_TTL_SECONDS", str(cls.token_ttl_seconds))),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, level.upper(), logging.INFO))
