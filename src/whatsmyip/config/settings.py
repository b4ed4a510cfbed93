import sys
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.panel import Panel

from ..services.discovery_service import DiscoveryOptions


ENV_PATH = Path.cwd() / ".env"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

class Settings(BaseSettings):
    """Manages default discovery options loaded from environment variables.

    Every variable carries the `WHATSMYIP_` prefix.

    Attributes:
        USE_GATEWAY: Query the local IGD router. Defaults to True.
        FAST: Stop at the first address found. Defaults to False.
        HTTP_LIMIT: Max number of HTTP providers to consult; unset means all.
        HTTP_TIMEOUT: Per-provider timeout in seconds; unset means none.
        GATEWAY_TIMEOUT: SSDP search window in seconds. Defaults to 2.0.
        LOG_LEVEL: Logging level name for the CLI. Defaults to WARNING.
    """
    USE_GATEWAY: bool = True
    FAST: bool = False
    HTTP_LIMIT: Optional[int] = Field(default=None, ge=0)
    HTTP_TIMEOUT: Optional[float] = Field(default=None, gt=0)
    GATEWAY_TIMEOUT: float = Field(default=2.0, gt=0)
    LOG_LEVEL: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="WHATSMYIP_",
        env_file=ENV_PATH,
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validates the logging level name.

        Args:
            v: Level name from the environment, in any case.

        Returns:
            The upper-cased level name.

        Raises:
            ValueError: If the name is not a standard logging level.
        """
        v = v.strip().upper()

        if v not in LOG_LEVELS:
            raise ValueError(
                f"Unknown log level: {v!r}. "
                "Use one of DEBUG, INFO, WARNING, ERROR, CRITICAL."
            )

        return v

    def to_options(self) -> DiscoveryOptions:
        """Builds discovery options from these settings."""
        return DiscoveryOptions(
            use_gateway=self.USE_GATEWAY,
            fast=self.FAST,
            http_limit=self.HTTP_LIMIT,
            http_timeout=self.HTTP_TIMEOUT,
            gateway_timeout=self.GATEWAY_TIMEOUT,
        )


def load_settings() -> Settings:
    """Loads settings, printing a readable report and exiting on invalid values."""
    try:
        return Settings()
    except ValidationError as e:
        console = Console(stderr=True)

        error_messages = []
        for error in e.errors():
            field_name = str(error['loc'][0]) if error['loc'] else "settings"
            msg = error['msg']

            error_messages.append(f"[bold yellow]• WHATSMYIP_{field_name}[/]: {msg}")

        error_text = "\n".join(error_messages)

        console.print(Panel(
            error_text,
            title="[bold red]Configuration Error (environment)[/]",
            border_style="red",
            padding=(1, 2)
        ))

        console.print(f"\n[dim]Please check your environment or the file at: [/][blue]{ENV_PATH}[/]\n")

        sys.exit(1)
