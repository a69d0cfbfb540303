"""
Command-line entry point for the Cosmos DB lifecycle demo.

Runs the whole demonstration; options only change where the settings
come from.
"""

import sys
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError

from cosmosdemo import __version__
from cosmosdemo.core.config_manager import ConfigManager
from cosmosdemo.core.logging_config import setup_logging
from cosmosdemo.demo import LifecycleDemo


@click.command()
@click.version_option(version=__version__, prog_name="cosmosdemo")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (YAML or JSON)",
)
@click.option("--endpoint", help="Cosmos DB account endpoint URL")
@click.option("--key", help="Cosmos DB account key")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level",
)
@click.option(
    "--in-memory",
    is_flag=True,
    help="Run against the in-memory service model instead of an account",
)
@click.option(
    "--no-wait",
    is_flag=True,
    help="Exit without waiting for a key press",
)
def main(
    config: Optional[Path],
    endpoint: Optional[str],
    key: Optional[str],
    log_level: Optional[str],
    in_memory: bool,
    no_wait: bool
):
    """
    Cosmos DB resource lifecycle demo

    Creates a database and a container, reads and replaces their throughput,
    lists the account's resources and deletes what it created.

    Examples:
        cosmosdemo --endpoint https://myaccount.documents.azure.com:443/ --key ...
        cosmosdemo --config settings.yaml
        cosmosdemo --in-memory
    """
    overrides: Dict[str, Any] = {}
    if endpoint:
        overrides.setdefault("cosmos", {})["endpoint"] = endpoint
    if key:
        overrides.setdefault("cosmos", {})["key"] = key
    if in_memory:
        overrides.setdefault("cosmos", {})["in_memory"] = True
    if log_level:
        overrides.setdefault("logging", {})["level"] = log_level.upper()

    try:
        settings = ConfigManager().load(
            config_file=str(config) if config else None,
            cli_overrides=overrides
        )
    except (ValidationError, ValueError, OSError) as e:
        click.echo(f"[ERROR] Invalid configuration: {e}", err=True)
        sys.exit(1)

    setup_logging(
        level=settings.logging.level,
        format_type=settings.logging.format,
        log_file=settings.logging.file,
        rotation_size=settings.logging.rotation_size,
        rotation_count=settings.logging.rotation_count,
        module_levels=settings.logging.module_levels,
    )
    logging.getLogger("cosmosdemo.cli").info(f"Starting cosmosdemo v{__version__}")

    outcome = asyncio.run(LifecycleDemo(settings).run())

    if not no_wait:
        # Returns immediately when stdin or stdout is not a terminal
        click.pause(info="")

    sys.exit(0 if outcome.succeeded else 1)


if __name__ == "__main__":
    main()
