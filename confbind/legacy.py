# confbind/legacy.py
"""
confbind.legacy
---------------

Flat-map binder kept for older callers.

Copies string values into the top-level ``int``, ``str`` and ``bool`` fields
of a dataclass whose attribute name matches a mapping key. It knows nothing
about metadata, prefixes or converters; new code should use
``confbind.loader`` instead.
"""

import dataclasses
import typing
from typing import Any, Mapping

from .exceptions import ConversionFailure, UnsupportedFieldKind, UnsupportedRootKind
from .parsers import parse_bool, parse_int
from .utils import resolve_type, type_name


def load(config: Mapping[str, str], des: Any) -> None:
    """
    Copy ``config`` values into the matching fields of ``des``.

    Keys without a matching field are ignored.

    Raises:
        UnsupportedRootKind: If ``des`` is not a dataclass instance.
        UnsupportedFieldKind: If a matched field is not ``int``, ``str`` or ``bool``.
        ConversionFailure: If a value is not a valid integer or boolean.
    """
    if not dataclasses.is_dataclass(des) or isinstance(des, type):
        raise UnsupportedRootKind(type(des).__name__)

    hints = typing.get_type_hints(type(des))
    for f in dataclasses.fields(des):
        if f.name not in config:
            continue
        val = config[f.name]
        base, _ = resolve_type(hints.get(f.name, f.type))

        try:
            if base is bool:
                setattr(des, f.name, parse_bool(val))
            elif base is int:
                setattr(des, f.name, parse_int(val))
            elif base is str:
                setattr(des, f.name, val)
            else:
                raise UnsupportedFieldKind(f.name, type_name(base))
        except ValueError as e:
            raise ConversionFailure(f.name, val, e) from e
