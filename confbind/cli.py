# confbind/cli.py

import dataclasses
import importlib
import json
from datetime import date, datetime, time, timedelta
from pathlib import PurePath
from urllib.parse import ParseResult
from zoneinfo import ZoneInfo

import click

from .exceptions import ConfigError
from .loader import load_config
from .provenance import ProvenanceStore
from .struct_reader import get_description


def _import_target(target: str):
    """
    Resolve ``module:Class`` and return a fresh instance of the dataclass.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise click.BadParameter(f"expected module:Class, got {target!r}", param_hint="TARGET")
    obj = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    if not (isinstance(obj, type) and dataclasses.is_dataclass(obj)):
        raise click.BadParameter(f"{target} is not a dataclass", param_hint="TARGET")
    try:
        return obj()
    except TypeError as e:
        raise click.BadParameter(f"{target} cannot be built without arguments: {e}", param_hint="TARGET") from e


def _plain(value):
    """Turn a bound config into JSON-friendly data."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, ParseResult):
        return value.geturl()
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_plain(v) for v in value), key=str)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, ZoneInfo):
        return value.key
    if isinstance(value, PurePath):
        return str(value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def _bind(ctx, target):
    """Instantiate TARGET and bind it; exit 1 with a red message on failure."""
    provenance = ProvenanceStore()
    try:
        cfg = _import_target(target)
        load_config(ctx.obj["file_path"], cfg, provenance)
    except (ConfigError, ImportError, AttributeError, OSError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)
    return cfg, provenance


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-c", "--config", "file_path", help="YAML/JSON/TOML/.env file to load before the environment")
@click.pass_context
def cli(ctx, file_path):
    """
    confbind CLI: bind a settings dataclass and inspect the result.

    TARGET is ``module:Class`` for a dataclass that can be built with no
    arguments. Subcommands:
      • dump      TARGET [--sources]
      • describe  TARGET
      • check     TARGET
    """
    ctx.obj = {"file_path": file_path}


@cli.command()
@click.argument("target")
@click.option("--sources", is_flag=True, help="Show where each field's value came from")
@click.pass_context
def dump(ctx, target, sources):
    """Bind TARGET and print it as JSON."""
    cfg, provenance = _bind(ctx, target)
    if sources:
        for entry in provenance.all_entries().values():
            click.echo(str(entry))
        return
    click.echo(json.dumps(_plain(cfg), indent=2))


@cli.command()
@click.argument("target")
@click.pass_context
def describe(ctx, target):
    """List the environment variables TARGET reads."""
    try:
        cfg = _import_target(target)
        click.echo(get_description(cfg))
    except (ConfigError, ImportError, AttributeError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)


@cli.command()
@click.argument("target")
@click.pass_context
def check(ctx, target):
    """Exit 0 if TARGET binds cleanly, 1 otherwise."""
    _bind(ctx, target)
    click.secho("ok", fg="green")
