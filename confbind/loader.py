# confbind/loader.py
"""
confbind.loader
---------------

Public entry points and the config-file source.

    read_config(path, cfg)   file, then environment
    read_env(cfg)            environment only
    update_env(cfg)          environment, updatable fields only
    load_config(path, cfg)   read_config if a path is given, else read_env

Supported files: YAML (``.yaml``/``.yml``), JSON (``.json``), TOML
(``.toml``) and dotenv (``.env``). Structured formats are decoded straight
into the dataclass. Dotenv entries go into ``os.environ`` instead, so the
environment pass that follows picks them up like any other variable.
"""

import dataclasses
import io
import json
import logging
import os
import sys
import typing
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .binder import read_env_vars
from .exceptions import ConfigError, FileParseError, UnsupportedFileFormat
from .parsers import DEFAULT_SEPARATOR, get_converter, parse_value
from .provenance import ProvenanceStore
from .struct_reader import TAG_ENV_LAYOUT, TAG_ENV_SEPARATOR, TAG_KEY
from .utils import expand_path, file_extension, is_struct_type, resolve_type

log = logging.getLogger(__name__)


# --- Public entry points ---

def read_config(path, cfg: Any, provenance: Optional[ProvenanceStore] = None) -> Any:
    """
    Load ``path`` into ``cfg``, then overlay environment variables.

    Returns:
        ``cfg``, filled in place.

    Raises:
        FileNotFoundError: If the file does not exist.
        UnsupportedFileFormat: If the extension has no decoder.
        FileParseError: If the file cannot be decoded into ``cfg``.
        ConfigError: Any failure of the environment pass.
    """
    parse_file(path, cfg, provenance)
    read_env_vars(cfg, update=False, provenance=provenance)
    return cfg


def read_env(cfg: Any, provenance: Optional[ProvenanceStore] = None) -> Any:
    """Bind environment variables and defaults into ``cfg``."""
    read_env_vars(cfg, update=False, provenance=provenance)
    return cfg


def update_env(cfg: Any, provenance: Optional[ProvenanceStore] = None) -> Any:
    """Re-read the environment for fields marked updatable; nothing else is touched."""
    read_env_vars(cfg, update=True, provenance=provenance)
    return cfg


def load_config(file_path, cfg: Any, provenance: Optional[ProvenanceStore] = None) -> Any:
    """Program start-up helper: file plus environment when a path is given, environment only otherwise."""
    if file_path:
        return read_config(file_path, cfg, provenance)
    return read_env(cfg, provenance)


# --- File source ---

def parse_file(path, cfg: Any, provenance: Optional[ProvenanceStore] = None) -> None:
    """
    Decode one config file into ``cfg`` (or into ``os.environ`` for dotenv files).
    """
    file_path = expand_path(path)
    with open(file_path, mode="rb") as f:
        ext = file_extension(file_path)
        decoder = _DECODERS.get(ext)
        if decoder is None:
            raise UnsupportedFileFormat(ext)
        log.debug(f"Decoding {file_path} as {ext}")
        try:
            decoder(f, cfg, f"file:{file_path}", provenance)
        except (ConfigError, ValueError, TypeError, yaml.YAMLError) as e:
            raise FileParseError(file_path, e) from e


def _parse_yaml(stream, cfg, source, provenance):
    data = yaml.safe_load(stream)
    decode_into(cfg, data if data is not None else {}, source, provenance)


def _parse_json(stream, cfg, source, provenance):
    decode_into(cfg, json.load(stream), source, provenance)


def _parse_toml(stream, cfg, source, provenance):
    decode_into(cfg, tomllib.load(stream), source, provenance)


def _parse_env(stream, cfg, source, provenance):
    text = stream.read().decode("utf-8")
    for name, value in dotenv_values(stream=io.StringIO(text)).items():
        if value is None:
            log.warning(f"Ignoring '{name}' in {source}: no value assigned")
            continue
        os.environ[name] = value


_DECODERS = {
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
    ".json": _parse_json,
    ".toml": _parse_toml,
    ".env": _parse_env,
}


def decode_into(obj: Any, data: Any, source: str = "mapping",
                provenance: Optional[ProvenanceStore] = None, path: str = "") -> None:
    """
    Copy a decoded mapping into the dataclass instance ``obj``.

    Keys match the field's ``key`` alias or its name, falling back to a
    case-insensitive match. Unknown keys are ignored. Nested dataclasses are
    filled in place; string values for non-string fields go through
    ``parse_value`` so that e.g. timestamps and URLs decode the same way as
    from the environment.
    """
    if not isinstance(data, Mapping):
        raise TypeError(f"expected a mapping at '{path or '<root>'}', got {type(data).__name__}")

    if type(obj).__dataclass_params__.frozen:
        log.debug(f"Skipping frozen structure at '{path or '<root>'}'")
        return

    hints = typing.get_type_hints(type(obj), include_extras=True)
    by_key = {}
    for f in dataclasses.fields(obj):
        if not f.name.startswith("_"):
            by_key[f.metadata.get(TAG_KEY, f.name)] = f
    by_lower_key = {k.lower(): f for k, f in by_key.items()}

    for key, value in data.items():
        f = by_key.get(key) or by_lower_key.get(str(key).lower())
        if f is None:
            log.debug(f"Ignoring unknown key '{key}' at '{path or '<root>'}'")
            continue

        field_type = hints.get(f.name, f.type)
        base, _ = resolve_type(field_type)
        field_path = f"{path}.{f.name}" if path else f.name

        if is_struct_type(base) and get_converter(base) is None and isinstance(value, Mapping):
            nested = getattr(obj, f.name)
            if nested is None:
                nested = base()
                setattr(obj, f.name, nested)
            decode_into(nested, value, source, provenance, field_path)
            continue

        converted = _coerce(
            value,
            field_type,
            f.metadata.get(TAG_ENV_SEPARATOR) or DEFAULT_SEPARATOR,
            f.metadata.get(TAG_ENV_LAYOUT),
            field_path,
        )
        setattr(obj, f.name, converted)
        if provenance is not None:
            provenance.record(field_path, converted, source)


def _coerce(value: Any, tp: Any, separator: str, layout: Optional[str], field_path: str) -> Any:
    base, _ = resolve_type(tp)
    if value is None or base is Any:
        return value
    if isinstance(value, str):
        if base is str:
            return value
        return parse_value(tp, value, separator, layout, field_path)
    if base is str and isinstance(value, (int, float)):
        return str(value).lower() if isinstance(value, bool) else str(value)
    if base is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    # e.g. a YAML date or a bare number for a registered leaf type
    if get_converter(base) is not None and not (isinstance(base, type) and isinstance(value, base)):
        return parse_value(tp, str(value), separator, layout, field_path)

    origin = typing.get_origin(base) or base
    args = typing.get_args(base)
    if origin in (list, set, frozenset, tuple) and isinstance(value, (list, tuple)):
        if origin is tuple and args and args[-1] is not Ellipsis:
            elem_types = args
        else:
            elem_types = [args[0] if args else Any] * len(value)
        return origin(
            _coerce(item, elem_tp, separator, layout, f"{field_path}[{idx}]")
            for idx, (elem_tp, item) in enumerate(zip(elem_types, value))
        )
    if origin is dict and isinstance(value, Mapping):
        key_tp, value_tp = args if args else (Any, Any)
        return {
            _coerce(k, key_tp, separator, layout, field_path):
                _coerce(v, value_tp, separator, layout, f"{field_path}[{k}]")
            for k, v in value.items()
        }
    return value
