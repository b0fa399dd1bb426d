# confbind/parsers.py
"""
confbind.parsers
----------------

Turns one raw string into one typed field value.

Three layers are consulted, in order:

1. The :class:`Setter` capability: a type that parses itself.
2. The converter registry: an exact-type table of leaf types (``datetime``,
   ``ParseResult``, ``ZoneInfo``, ...) that own their textual format.
3. Kind-based parsing for ``bool``, the integer family, ``float``, ``str``,
   sequences and mappings, recursing into element types.

The registry is process-wide and append-only. Built-in converters are
installed when this module is imported; register your own before the first
binding pass that needs them.
"""

import logging
import math
import re
import struct
import typing
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Annotated, Any, Callable, Dict, Optional, Protocol
from urllib.parse import ParseResult, urlparse
from zoneinfo import ZoneInfo

from .exceptions import ConfigError, ConversionFailure, UnsupportedFieldKind
from .utils import has_method, resolve_type, type_name

log = logging.getLogger(__name__)

DEFAULT_SEPARATOR = ","

ParseFunc = Callable[[str, Optional[str]], Any]


class Setter(Protocol):
    """A type that populates itself from one raw string.

    Detected by a callable ``set_value`` on the class, not by subclassing.
    """

    def set_value(self, value: str) -> None:
        ...


# --- Sized numeric markers ---

@dataclass(frozen=True)
class IntBits:
    """Bit width marker for ``Annotated[int, IntBits(...)]``."""

    bits: int
    signed: bool = True

    @property
    def bounds(self):
        if self.signed:
            return -(1 << (self.bits - 1)), (1 << (self.bits - 1)) - 1
        return 0, (1 << self.bits) - 1


@dataclass(frozen=True)
class FloatBits:
    """Bit width marker for ``Annotated[float, FloatBits(32)]``."""

    bits: int


Int8 = Annotated[int, IntBits(8)]
Int16 = Annotated[int, IntBits(16)]
Int32 = Annotated[int, IntBits(32)]
Int64 = Annotated[int, IntBits(64)]
Uint8 = Annotated[int, IntBits(8, signed=False)]
Uint16 = Annotated[int, IntBits(16, signed=False)]
Uint32 = Annotated[int, IntBits(32, signed=False)]
Uint64 = Annotated[int, IntBits(64, signed=False)]
Uint = Uint64
Float32 = Annotated[float, FloatBits(32)]


# --- Converter registry ---

_converters: Dict[Any, ParseFunc] = {}


def register_converter(tp: Any, func: ParseFunc) -> None:
    """
    Register a parse function for an exact type.

    The function receives ``(raw_value, layout)`` and returns the converted
    value; any exception it raises becomes a ``ConversionFailure``. Types
    registered here are bound as leaves: dataclasses among them are never
    walked field by field.

    Raises:
        ValueError: If the type already has a converter.
    """
    if tp in _converters:
        raise ValueError(f"a converter for {type_name(tp)} is already registered")
    _converters[tp] = func
    log.debug(f"Registered converter for {type_name(tp)}")


def get_converter(tp: Any) -> Optional[ParseFunc]:
    """Return the converter registered for exactly ``tp``, or None."""
    try:
        return _converters.get(tp)
    except TypeError:  # unhashable hint
        return None


def _parse_datetime(value: str, layout: Optional[str]) -> datetime:
    if layout:
        return datetime.strptime(value, layout)
    # RFC 3339 'Z' suffix; fromisoformat only accepts it from 3.11 on
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _parse_date(value: str, layout: Optional[str]) -> date:
    if layout:
        return datetime.strptime(value, layout).date()
    return date.fromisoformat(value)


# seconds per unit
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_NUMBER = re.compile(r"[0-9]*\.?[0-9]+")
_DURATION_PART = re.compile(r"([0-9]*\.?[0-9]+)(ns|us|µs|ms|s|m|h)")


def _parse_duration(value: str, layout: Optional[str]) -> timedelta:
    """Parse ``1h30m``, ``-250ms``, ``1.5s`` or a plain number of seconds."""
    text = value.strip()
    sign = 1
    if text.startswith(("+", "-")):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if _DURATION_NUMBER.fullmatch(text):
        return timedelta(seconds=sign * float(text))
    pos, seconds = 0, 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if not text or pos != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return timedelta(seconds=sign * seconds)


def _parse_url(value: str, layout: Optional[str]) -> ParseResult:
    return urlparse(value)


def _parse_location(value: str, layout: Optional[str]) -> ZoneInfo:
    return ZoneInfo(value)


def _parse_path(value: str, layout: Optional[str]) -> Path:
    return Path(value)


def _install_builtin_converters():
    register_converter(datetime, _parse_datetime)
    register_converter(date, _parse_date)
    register_converter(timedelta, _parse_duration)
    register_converter(ParseResult, _parse_url)
    register_converter(ZoneInfo, _parse_location)
    register_converter(Path, _parse_path)


_install_builtin_converters()


# --- Scalar parsers ---

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_SIGNED_INT = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_INT = re.compile(r"\+?[0-9]+")
_INF_LITERALS = frozenset({"inf", "infinity"})
FLOAT32_MAX = 3.4028234663852886e38


def parse_bool(raw: str) -> bool:
    """Parse the boolean literals ``1 t T TRUE true True`` and their false twins."""
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError("invalid boolean literal")


def parse_int(raw: str, bits: Optional[IntBits] = None) -> int:
    """Parse a base-10 integer, range-checked when ``bits`` is given."""
    pattern = _UNSIGNED_INT if bits is not None and not bits.signed else _SIGNED_INT
    if not pattern.fullmatch(raw):
        raise ValueError("invalid syntax")
    value = int(raw)
    if bits is not None:
        low, high = bits.bounds
        if not low <= value <= high:
            raise ValueError(f"value out of range for {bits.bits}-bit integer")
    return value


def parse_float(raw: str, bits: Optional[FloatBits] = None) -> float:
    """Parse a decimal or exponent float; ``FloatBits(32)`` rounds to single precision."""
    if not raw or raw != raw.strip() or "_" in raw:
        raise ValueError("invalid syntax")
    value = float(raw)
    literal_inf = raw.lstrip("+-").lower() in _INF_LITERALS
    if math.isinf(value) and not literal_inf:
        raise ValueError("value out of range")
    if bits is not None and bits.bits == 32:
        if abs(value) > FLOAT32_MAX and not literal_inf:
            raise ValueError("value out of range for 32-bit float")
        value = struct.unpack("f", struct.pack("f", value))[0]
    return value


def _marker(extras, kind):
    return next((e for e in extras if isinstance(e, kind)), None)


# --- Entry point ---

def parse_value(tp: Any,
                raw: str,
                separator: str = DEFAULT_SEPARATOR,
                layout: Optional[str] = None,
                field_name: str = "<value>",
                current: Any = None) -> Any:
    """
    Convert ``raw`` into a value of type ``tp``.

    Args:
        tp: The declared type hint of the field (``Optional``/``Annotated`` allowed).
        raw: The raw string taken from the environment or a default.
        separator: Item separator for sequences and mappings.
        layout: Optional format string handed to registered converters.
        field_name: Used in error messages only.
        current: The field's current value; a ``Setter`` instance is updated in place.

    Returns:
        The converted value. The caller assigns it to the field.

    Raises:
        ConversionFailure: If ``raw`` is not valid for ``tp``.
        UnsupportedFieldKind: If nothing knows how to build ``tp``.
    """
    base, extras = resolve_type(tp)
    separator = separator or DEFAULT_SEPARATOR

    setter_target = _setter_target(base, current, field_name, raw)
    if setter_target is not None:
        _call_guarded(setter_target.set_value, raw, field_name, raw)
        return setter_target

    converter = get_converter(base)
    if converter is not None:
        return _call_guarded(converter, raw, field_name, raw, layout)

    if base is bool:
        return _call_guarded(parse_bool, raw, field_name, raw)
    if base is int:
        return _call_guarded(parse_int, raw, field_name, raw, _marker(extras, IntBits))
    if base is float:
        return _call_guarded(parse_float, raw, field_name, raw, _marker(extras, FloatBits))
    if base is str:
        return raw

    origin = typing.get_origin(base) or base
    args = typing.get_args(base)

    if origin in (list, set, frozenset, tuple):
        return _parse_sequence(origin, args, raw, separator, layout, field_name)
    if origin is dict:
        return _parse_mapping(args, raw, separator, layout, field_name)

    raise UnsupportedFieldKind(field_name, type_name(tp))


def _setter_target(base, current, field_name, raw):
    if current is not None and has_method(current, "set_value"):
        return current
    if typing.get_origin(base) is None and isinstance(base, type) and has_method(base, "set_value"):
        try:
            return base()
        except TypeError as exc:
            raise ConversionFailure(field_name, raw, f"cannot construct {base.__name__}: {exc}") from exc
    return None


def _call_guarded(func, raw, field_name, *args):
    try:
        return func(*args)
    except ConfigError:
        raise
    except Exception as exc:
        raise ConversionFailure(field_name, raw, str(exc) or type(exc).__name__) from exc


def _parse_sequence(origin, args, raw, separator, layout, field_name):
    parts = raw.split(separator)
    if origin is tuple and args and args[-1] is not Ellipsis:
        if len(args) != len(parts):
            raise ConversionFailure(field_name, raw, f"expected {len(args)} items, got {len(parts)}")
        elem_types = args
    else:
        elem_types = [args[0] if args else str] * len(parts)
    items = [
        parse_value(elem_tp, part, separator, layout, f"{field_name}[{idx}]")
        for idx, (elem_tp, part) in enumerate(zip(elem_types, parts))
    ]
    return origin(items)


def _parse_mapping(args, raw, separator, layout, field_name):
    key_tp, value_tp = args if args else (str, str)
    result = {}
    for entry in raw.split(separator):
        key, sep, value = entry.partition("=")
        if not sep:
            raise ConversionFailure(field_name, raw, f"invalid map item {entry!r}: missing '='")
        parsed_key = parse_value(key_tp, key, separator, layout, f"{field_name}<key>")
        result[parsed_key] = parse_value(value_tp, value, separator, layout, f"{field_name}[{key}]")
    return result
