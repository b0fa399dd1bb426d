# confbind/binder.py
"""
confbind.binder
---------------

Resolves each field's raw value and writes the converted value into the
target.

Resolution order per field (lowest to highest priority):

1.  **Existing value**: kept whenever it is non-zero and no environment
    variable matches. Values decoded from a config file survive this way.
2.  **Default** (``env-default``): applied only when the field is still zero.
3.  **Environment**: the first variable of the field's name list that is
    present in ``os.environ`` (an empty value counts as present).

A required field that is still zero after step 3 fails the pass before its
default is considered.
"""

import dataclasses
import logging
import os
from typing import Any, Optional, Protocol

from .exceptions import UpdaterFailure, RequiredFieldMissing
from .parsers import parse_value
from .provenance import ProvenanceStore
from .struct_reader import read_struct_metadata
from .utils import has_method

log = logging.getLogger(__name__)


class Updater(Protocol):
    """A structure that refreshes itself before per-field binding runs.

    Detected by a callable ``update`` on the class of the root object.
    """

    def update(self) -> None:
        ...


def read_env_vars(cfg: Any, update: bool = False, provenance: Optional[ProvenanceStore] = None) -> None:
    """
    Bind environment variables (and defaults) into ``cfg`` in place.

    Args:
        cfg: The dataclass instance to fill.
        update: Only touch fields marked updatable (``env-upd``).
        provenance: Optional store that records which source set each field.

    Raises:
        ConfigError: The first failure met. Fields bound before it stay bound.
    """
    if dataclasses.is_dataclass(cfg) and not isinstance(cfg, type) and has_method(cfg, "update"):
        log.debug(f"Running {type(cfg).__name__}.update() before binding")
        try:
            cfg.update()
        except Exception as e:
            raise UpdaterFailure(type(cfg).__name__, e) from e

    # read after update(), which may replace nested instances
    metas = read_struct_metadata(cfg)

    for meta in metas:
        if update and not meta.updatable:
            continue

        raw_value = None
        source = None
        for env in meta.env_list:
            if env in os.environ:
                raw_value = os.environ[env]
                source = f"env:{env}"
                break

        if raw_value is None and meta.required and meta.is_field_value_zero():
            raise RequiredFieldMissing(meta.field_name)

        if raw_value is None and meta.is_field_value_zero() and meta.def_value is not None:
            raw_value = meta.def_value
            source = "default"

        if raw_value is None:
            continue

        value = parse_value(
            meta.field_type,
            raw_value,
            separator=meta.separator,
            layout=meta.layout,
            field_name=meta.field_name,
            current=meta.value,
        )
        meta.set(value)
        log.debug(f"Bound '{meta.field_name}' from {source}")

        if provenance is not None:
            provenance.record(meta.field_name, value, source)
