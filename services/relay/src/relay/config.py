from __future__ import annotations

import os

from pydantic import BaseModel, Field


class ReceiptsConfig(BaseModel):
    delay_ms: int = Field(2000, ge=0, description="Delay before auto-read receipts fire")

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000


class TypingConfig(BaseModel):
    # Advertised to clients only; typing expiry is client-driven.
    timeout_ms: int = Field(3000, ge=0, description="Client typing debounce hint")


class RoomsConfig(BaseModel):
    defaults: list[str] = Field(
        default_factory=lambda: ["general", "tech", "gaming", "random", "music"],
        description="Room names advertised to clients",
    )


class RelayConfig(BaseModel):
    receipts: ReceiptsConfig = Field(default_factory=ReceiptsConfig)
    typing: TypingConfig = Field(default_factory=TypingConfig)
    rooms: RoomsConfig = Field(default_factory=RoomsConfig)


def apply_env_overrides(config: RelayConfig) -> RelayConfig:
    """Environment variables override values loaded from YAML.

    - READ_RECEIPT_DELAY_MS: auto-read receipt delay
    - TYPING_TIMEOUT_MS: typing debounce hint sent to clients
    """
    if delay := os.environ.get("READ_RECEIPT_DELAY_MS"):
        config.receipts.delay_ms = int(delay)
    if timeout := os.environ.get("TYPING_TIMEOUT_MS"):
        config.typing.timeout_ms = int(timeout)
    return config
