"""Configuration management for FocusFlow.

Loads settings from environment variables and .env file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class FocusFlowConfig(BaseModel):
    """Application configuration: all from env vars or defaults."""

    # External estimator / recommendation generator
    llm_provider: Literal["anthropic", "openai", "ollama"] = Field(
        default_factory=lambda: os.getenv("FOCUSFLOW_LLM_PROVIDER", "openai")  # type: ignore[arg-type]
    )
    llm_model: str = Field(
        default_factory=lambda: os.getenv("FOCUSFLOW_LLM_MODEL", "gpt-4o-mini")
    )
    anthropic_api_key: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", "")
    )
    openai_api_key: str = Field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY", "")
    )
    ollama_base_url: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    )

    # Estimation
    provider_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("FOCUSFLOW_PROVIDER_TIMEOUT", "5"))
    )
    history_limit: int = Field(
        default_factory=lambda: int(os.getenv("FOCUSFLOW_HISTORY_LIMIT", "20"))
    )

    # Bulk estimation (rate-limit friendly)
    batch_size: int = Field(
        default_factory=lambda: int(os.getenv("FOCUSFLOW_BATCH_SIZE", "5"))
    )
    batch_pause_seconds: float = Field(
        default_factory=lambda: float(os.getenv("FOCUSFLOW_BATCH_PAUSE", "1"))
    )

    # Analytics
    focus_split: Literal["heuristic", "recorded"] = Field(
        default_factory=lambda: os.getenv("FOCUSFLOW_FOCUS_SPLIT", "heuristic")  # type: ignore[arg-type]
    )

    # Storage
    data_dir: str = Field(
        default_factory=lambda: os.getenv(
            "FOCUSFLOW_DATA_DIR",
            str(Path.home() / ".focusflow"),
        )
    )

    def has_llm_credentials(self) -> bool:
        """True if the configured provider can plausibly be reached."""
        if self.llm_provider == "anthropic":
            return bool(self.anthropic_api_key)
        if self.llm_provider == "openai":
            return bool(self.openai_api_key)
        return True  # ollama needs no key

    def get_llm_client(self):
        """Create the appropriate LLM client based on config."""
        if self.llm_provider == "anthropic":
            try:
                import anthropic
                return anthropic.AsyncAnthropic(api_key=self.anthropic_api_key)
            except ImportError:
                raise RuntimeError("pip install anthropic  (or: pip install focusflow[inference])")

        elif self.llm_provider == "openai":
            try:
                import openai
                return openai.AsyncOpenAI(api_key=self.openai_api_key)
            except ImportError:
                raise RuntimeError("pip install openai  (or: pip install focusflow[inference])")

        elif self.llm_provider == "ollama":
            try:
                import openai
                return openai.AsyncOpenAI(
                    base_url=f"{self.ollama_base_url}/v1",
                    api_key="ollama",
                )
            except ImportError:
                raise RuntimeError("pip install openai  (or: pip install focusflow[inference])")

        raise ValueError(f"Unknown LLM provider: {self.llm_provider}")


def load_config() -> FocusFlowConfig:
    """Load configuration from environment."""
    return FocusFlowConfig()
