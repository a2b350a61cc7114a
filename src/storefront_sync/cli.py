# SPDX-License-Identifier: MIT
"""Command-line interface for the storefront sync layer."""

import asyncio
import functools
import json
import sys
import traceback
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from . import __version__
from .config import AppConfig, get_config_manager
from .exceptions import SyncError
from .logging_config import get_status_logger, setup_logging
from .models import Snapshot
from .query import CollectionQueryBuilder
from .settings import CostControl, SqliteSettingsStore
from .stores import HttpCollectionStore
from .sync import SyncStrategySelector


F = TypeVar("F", bound=Callable[..., Any])

_SWITCH_VALUES = {"on": True, "true": True, "off": False, "false": False}


def handle_cli_errors(func: F) -> F:
    """Decorator to handle common CLI error patterns.

    Logs the error through the status logger (with a traceback when the
    command was run with --verbose) and exits with status code 1.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        status_logger = get_status_logger()
        verbose = kwargs.get("verbose", False)

        try:
            return func(*args, **kwargs)
        except (SyncError, ValueError, OSError) as e:
            if verbose:
                status_logger.error(f"Error in {func.__name__}: {e}")
                traceback.print_exc()
            else:
                status_logger.error(f"Error: {e}")
            sys.exit(1)

    return wrapper  # type: ignore


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit if requested."""
    if value:
        # Ensure logging is set up before using it (--version is eager)
        setup_logging()
        status_logger = get_status_logger()
        status_logger.info(f"storefront-sync version {__version__}")
        ctx.exit(0)


def _parse_pairs(values: tuple[str, ...], param_name: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(
                f"expected NAME=VALUE, got '{item}'", param_hint=param_name
            )
        pairs[name.strip()] = value.strip()
    return pairs


def _parse_option_value(value: str) -> Any:
    """Option values from the command line: true/false become booleans."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    return value


def _cost_control(config: AppConfig) -> CostControl:
    store = SqliteSettingsStore(Path(config.settings_store.db_path))
    return CostControl(store, cache_ttl_seconds=config.sync.settings_cache_ttl_seconds)


def _snapshot_line(snapshot: Snapshot) -> str:
    return json.dumps(
        {
            "key": snapshot.key,
            "collection": snapshot.collection,
            "channel": snapshot.channel_kind.value,
            "produced_at": snapshot.produced_at.isoformat(),
            "records": list(snapshot.records),
        },
        default=str,
    )


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version information and exit",
)
def main() -> None:
    """storefront-sync - Keep dashboard collections fresh at a controlled read cost."""
    log_dir = get_config_manager().load_config().logging.log_dir
    detail_logger, status_logger = setup_logging(Path(log_dir) if log_dir else None)
    detail_logger.debug("CLI initialized")


@main.command()
def config() -> None:
    """Show the complete current configuration."""
    config_output = get_config_manager().show_config()
    print(config_output)


@main.group(name="cost-control")
def cost_control() -> None:
    """Inspect and change the push/poll cost-control settings."""
    pass


@cost_control.command(name="show")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@handle_cli_errors
def cost_control_show(verbose: bool) -> None:
    """Show the effective cost-control settings."""
    accessor = _cost_control(get_config_manager().load_config())
    settings = asyncio.run(accessor.get_settings())
    print(json.dumps(settings.model_dump(mode="json"), indent=2))


@cost_control.command(name="set")
@click.option(
    "--push/--no-push", "enabled", default=None, help="Global live-update switch"
)
@click.option(
    "--interval",
    type=int,
    default=None,
    help="Polling interval in seconds (clamped to 10-300)",
)
@click.option(
    "--collection",
    "collection_switches",
    multiple=True,
    metavar="NAME=on|off",
    help="Per-collection push switch (repeatable)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@handle_cli_errors
def cost_control_set(
    enabled: bool | None,
    interval: int | None,
    collection_switches: tuple[str, ...],
    verbose: bool,
) -> None:
    """Change the cost-control settings.

    Examples:
      storefront-sync cost-control set --no-push
      storefront-sync cost-control set --interval 60 --collection products=on
    """
    collections: dict[str, bool] = {}
    for name, value in _parse_pairs(collection_switches, "--collection").items():
        if value.lower() not in _SWITCH_VALUES:
            raise click.BadParameter(
                f"'{value}' for '{name}' must be on or off", param_hint="--collection"
            )
        collections[name] = _SWITCH_VALUES[value.lower()]

    if enabled is None and interval is None and not collections:
        raise click.UsageError("Nothing to change; pass --push/--no-push, --interval or --collection")

    accessor = _cost_control(get_config_manager().load_config())
    settings = asyncio.run(
        accessor.update_settings(
            enabled=enabled,
            polling_interval_seconds=interval,
            collections=collections or None,
        )
    )
    print(json.dumps(settings.model_dump(mode="json"), indent=2))


@main.command()
@click.argument("collection")
@click.option(
    "--option",
    "query_options",
    multiple=True,
    metavar="NAME=VALUE",
    help="Query option for the collection (repeatable)",
)
@click.option("--limit", type=int, default=None, help="Maximum number of records")
@click.option(
    "--count",
    type=int,
    default=None,
    help="Exit after this many snapshots (default: run until interrupted)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@handle_cli_errors
def watch(
    collection: str,
    query_options: tuple[str, ...],
    limit: int | None,
    count: int | None,
    verbose: bool,
) -> None:
    """Print every snapshot of a collection query as a JSON line.

    COLLECTION: Logical collection name, e.g. orders or products
    """
    options: dict[str, Any] = {
        name: _parse_option_value(value)
        for name, value in _parse_pairs(query_options, "--option").items()
    }
    if limit is not None:
        options["limit"] = limit

    try:
        asyncio.run(_async_watch(collection, options, count))
    except KeyboardInterrupt:
        get_status_logger().info("Stopped watching")


async def _async_watch(
    collection: str, options: dict[str, Any], count: int | None
) -> None:
    config = get_config_manager().load_config()
    snapshots: asyncio.Queue[Snapshot] = asyncio.Queue()

    async with HttpCollectionStore(
        config.store.base_url, timeout_seconds=config.store.timeout_seconds
    ) as store:
        selector = SyncStrategySelector(
            CollectionQueryBuilder(), _cost_control(config), store
        )
        detach = await selector.open_or_attach(
            collection, options, snapshots.put_nowait
        )
        try:
            received = 0
            while count is None or received < count:
                snapshot = await snapshots.get()
                print(_snapshot_line(snapshot), flush=True)
                received += 1
        finally:
            detach()
            await selector.close_all()


if __name__ == "__main__":
    main()
