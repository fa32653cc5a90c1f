"""Battery watcher CLI application.

This module provides the command-line interface for the low-battery
watcher: running the daemon, showing the current battery state and
configuration helpers.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Final

import typer
from pydantic import ValidationError

from batterywatch.app import BatteryWatcher
from batterywatch.errors import ConfigUnavailableError
from batterywatch.settings.store import YamlConfigStore
from batterywatch.settings.user import WatchSettings
from batterywatch.system.battery import create_battery_source

# ── CLI setup ────────────────────────────────────────────────────────────────
app = typer.Typer(help="Low-battery watcher CLI", add_completion=False)
config_app = typer.Typer(help="Config helpers")
app.add_typer(config_app, name="config")

logger: Final = logging.getLogger(__name__)  # Will be "batterywatch.cli"

CONFIG_OPTION = typer.Option(None, "--config", "-c", dir_okay=False, help="Path to config.yaml")
DEBUG_OPTION = typer.Option(False, "--debug", help="Enable debug logging")
DRY_RUN_OPTION = typer.Option(False, "--dry-run", help="Log power actions instead of executing them")
NO_NOTIFY_OPTION = typer.Option(False, "--no-notify", help="Disable desktop notifications")
DST_ARGUMENT = typer.Argument(..., help="Output config.yaml")


@app.command()
def run(
    config: Path | None = CONFIG_OPTION,
    debug: bool = DEBUG_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    no_notify: bool = NO_NOTIFY_OPTION,
) -> None:
    """Watch the battery and act when it runs low."""
    watcher = BatteryWatcher(
        config,
        dry_run=dry_run,
        notifications=False if no_notify else None,
        debug=debug,
    )
    watcher.run()


@app.command()
def status(config: Path | None = CONFIG_OPTION) -> None:
    """Print the current battery state and power-low policy."""
    store = YamlConfigStore(config)
    store.reload()
    settings = store.settings
    policy = store.current_policy()

    source = create_battery_source(
        settings.battery_backend, settings.power_supply_dir, policy.low_level_threshold
    )
    if not source.have_battery():
        typer.echo("Battery: not found")
    else:
        source.poll()
        state = source.current_state()
        typer.echo(f"Battery: {state.formatted_level}{' discharging' if state.discharging else ''}")
        typer.echo(f"Power low: {'yes' if state.power_low else 'no'}")

    if not store.available:
        typer.echo("Config: unavailable (power actions disabled)")
    else:
        typer.echo(f"Config: {store.path}")
    typer.echo(
        f"Action: {policy.action.value} after {policy.warning_lead_seconds}s "
        f"at or below {policy.low_level_threshold:.0%}"
    )


# ───────────────────────── config sub-commands ───────────────────────────────
@config_app.command("validate")
def validate_config(file: Path) -> None:
    """Validate a YAML config file against the schema."""
    try:
        WatchSettings.load(file)
        typer.echo("✅ Config valid")
    except ConfigUnavailableError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@config_app.command("wizard")
def wizard(dst: Path = DST_ARGUMENT) -> None:
    """Interactive prompt to create a config file."""
    typer.echo("Interactive config builder - press Enter for defaults.")

    while True:
        data: dict[str, Any] = {
            "power_low_action": typer.prompt(
                "Action on power low [none|sleep|hibernate|poweroff]", default="sleep"
            ),
            "power_low_warning": typer.prompt("Warning time (seconds)", default=30, type=int),
            "power_low_level": typer.prompt("Power low level (0-1)", default=0.05, type=float),
            "use_theme_icons": typer.confirm("Use theme icons?", default=False),
        }
        try:
            cfg = WatchSettings(**data)
            break  # valid → exit loop
        except ValidationError as err:
            typer.secho("\nConfig error(s):", fg=typer.colors.RED, err=True)
            for e in err.errors():
                typer.secho(f"  • {e['loc'][0]} - {e['msg']}", fg=typer.colors.RED, err=True)
            typer.echo("Please re-enter the values.\n")

    dst.write_text(cfg.to_yaml(), encoding="utf-8")
    typer.secho(f"Config written to {dst}", fg=typer.colors.GREEN)


# ───────────────────────── module entrypoint ────────────────────────────────
if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(0)
