from __future__ import annotations

import os
from functools import lru_cache
from dotenv import load_dotenv, find_dotenv

_env_path = find_dotenv(".env") or ".env"
load_dotenv(_env_path, override=False)


def _split_csv(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


class Settings:
    """Central configuration (env driven)."""

    def __init__(self) -> None:
        # AWS
        self.aws_region: str = os.getenv("AWS_REGION", "eu-north-1")
        self.table_name: str = os.getenv("TABLE_NAME") or "presentations"
        self.table_gsi_name: str = os.getenv("TABLE_GSI_NAME") or "GSI1"
        self.sqs_queue_url: str = os.getenv("SQS_QUEUE_URL", "")
        self.secrets_id: str = os.getenv("SECRETS_ID", "")
        self.websocket_api_endpoint: str = os.getenv("WEBSOCKET_API_ENDPOINT", "")
        # Auth
        self.user_whitelist: list[str] = [e.lower() for e in _split_csv(os.getenv("USER_WHITELIST"))]
        # Bedrock / generation
        self.bedrock_model_id: str = os.getenv(
            "BEDROCK_MODEL_ID", "anthropic.claude-3-5-sonnet-20240620-v1:0"
        )
        try:
            self.bedrock_max_tokens: int = int(os.getenv("BEDROCK_MAX_TOKENS", "8000"))
        except ValueError:
            self.bedrock_max_tokens = 8000
        try:
            self.bedrock_temperature: float = float(os.getenv("BEDROCK_TEMPERATURE", "0.7"))
        except ValueError:
            self.bedrock_temperature = 0.7
        # App meta
        self.app_name: str = "Presentation API"
        self.debug: bool = os.getenv("DEBUG", "False").lower() == "true"
        self.allow_origins: list[str] = _split_csv(os.getenv("ALLOW_ORIGINS")) or ["*"]
        self.run_generation_worker: bool = os.getenv("RUN_GENERATION_WORKER", "false").lower() == "true"

    @property
    def queue_enabled(self) -> bool:
        return bool(self.sqs_queue_url)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
