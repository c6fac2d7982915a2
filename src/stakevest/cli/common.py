"""Helpers shared by the stakevest command groups."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional

import click
from rich.console import Console

from stakevest.config_manager import ConfigManager
from stakevest.core.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Rich console for human-readable output
console = Console()


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def create_config_manager(
    ctx: click.Context, overrides: Optional[Dict[str, Any]] = None
) -> ConfigManager:
    """Instantiate ConfigManager respecting the root --environment/--config-dir options."""
    manager = ConfigManager(
        environment=ctx.obj.get("environment"),
        config_dir=ctx.obj.get("config_dir"),
        cli_overrides=overrides,
    )
    configure_logging(ctx, manager)
    return manager


def configure_logging(ctx: click.Context, manager: ConfigManager) -> None:
    """Apply the logging section; --log-level/--log-file take precedence."""
    settings = manager.logging
    setup_logging(
        name="stakevest",
        log_file=ctx.obj.get("log_file") or settings.log_file,
        level=ctx.obj.get("log_level") or settings.level,
        environment=manager.environment.value,
        enable_console=settings.json_console,
    )


def emit_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))
