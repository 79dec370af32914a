"""CLI interface for Retrykit"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

import click

from retrykit.domain.policy import RetryPolicy
from retrykit.infrastructure.config.config_manager import ConfigManager, ConfigurationError

logger = logging.getLogger(__name__)

POLICY_FIELDS = (
    "delay",
    "delay_min",
    "delay_max",
    "delay_factor",
    "max_delay",
    "jitter",
    "jitter_factor",
    "max_duration",
    "max_retries",
)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def format_value(value: Any) -> str:
    """Format a config value for display

    Durations are shown in seconds, unset values as "-".
    """
    if value is None:
        return "-"
    if isinstance(value, timedelta):
        return f"{value.total_seconds():g}s"
    return str(value)


def format_policy(name: str, policy: RetryPolicy) -> str:
    """Render every field of a policy, one per line"""
    config = policy.get_config()
    width = max(len(field) for field in POLICY_FIELDS)
    lines = [f"Policy: {name}"]
    for field in POLICY_FIELDS:
        lines.append(f"  {field.ljust(width)}  {format_value(getattr(config, field))}")
    if policy.is_unlimited:
        lines.append("  (unlimited retries)")
    return "\n".join(lines)


def _load_config(ctx: click.Context) -> ConfigManager:
    verbose = ctx.obj.get("verbose", False)
    try:
        return ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .retrykit.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """Retrykit - validated retry policy configuration"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("name", type=str, default="default")
@click.pass_context
def show(ctx, name: str):
    """Show the settings of a retry policy.

    NAME: Policy name (default: "default")
    """
    config_manager = _load_config(ctx)
    try:
        policy = config_manager.get_policy(name)
    except KeyError:
        available = ", ".join(config_manager.policy_names())
        _die(f"Unknown retry policy: {name} (available: {available})")
    click.echo(format_policy(name, policy))


@cli.command()
@click.pass_context
def check(ctx):
    """Validate every retry policy in the config."""
    config_manager = _load_config(ctx)
    names = config_manager.policy_names()
    for name in names:
        click.echo(f"OK {name}")
    click.echo(f"\n{len(names)} policies valid")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
