# confbind/struct_reader.py
"""
confbind.struct_reader
----------------------

Reads binding metadata from a dataclass instance.

Fields are annotated through ``dataclasses.field(metadata=...)`` with the
string keys below, or more conveniently with :func:`env_field`::

    @dataclass
    class Database:
        host: str = env_field("HOST", env_default="localhost")
        port: int = env_field("PORT", env_default="5432", upd=True)

    @dataclass
    class Settings:
        db: Database = env_field(prefix="DB_", default_factory=Database)
        tags: list[str] = env_field("TAGS", separator=";", default_factory=list)

``read_struct_metadata(Settings())`` then yields one :class:`FieldMeta` per
bindable field, nested dataclasses expanded in place (``DB_HOST``,
``DB_PORT``, ``TAGS``).
"""

import dataclasses
import logging
import typing
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Union

from .exceptions import CircularReference, UnsupportedRootKind
from .parsers import DEFAULT_SEPARATOR, get_converter
from .utils import is_struct_type, is_zero, resolve_type, type_name

log = logging.getLogger(__name__)

# --- Supported metadata keys ---

# Name of the environment variable or a comma-separated list of names
TAG_ENV = "env"
# Parsing layout for types such as datetime
TAG_ENV_LAYOUT = "env-layout"
# Default raw value
TAG_ENV_DEFAULT = "env-default"
# Custom list and map separator
TAG_ENV_SEPARATOR = "env-separator"
# Human-readable description, used for usage output only
TAG_ENV_DESCRIPTION = "env-description"
# Presence marks the field as updatable
TAG_ENV_UPD = "env-upd"
# Presence marks the field as required
TAG_ENV_REQUIRED = "env-required"
# Prefix for the environment names of a nested dataclass
TAG_ENV_PREFIX = "env-prefix"
# Key used for the field in config files, when it differs from the attribute name
TAG_KEY = "key"


def env_field(env: Union[str, Iterable[str], None] = None,
              *,
              env_default: Optional[str] = None,
              layout: Optional[str] = None,
              separator: Optional[str] = None,
              description: Optional[str] = None,
              upd: bool = False,
              required: bool = False,
              prefix: Optional[str] = None,
              key: Optional[str] = None,
              metadata: Optional[dict] = None,
              **kwargs):
    """
    Declare a dataclass field bound from the environment.

    Only the arguments that are set end up in the field metadata, so absence
    keeps its documented meaning (no default, standard separator, flags off).
    Remaining keyword arguments (``default``, ``default_factory``, ``repr``,
    ...) go to ``dataclasses.field``.
    """
    tags = dict(metadata or {})
    if env is not None:
        tags[TAG_ENV] = env if isinstance(env, str) else DEFAULT_SEPARATOR.join(env)
    if env_default is not None:
        tags[TAG_ENV_DEFAULT] = env_default
    if layout is not None:
        tags[TAG_ENV_LAYOUT] = layout
    if separator is not None:
        tags[TAG_ENV_SEPARATOR] = separator
    if description is not None:
        tags[TAG_ENV_DESCRIPTION] = description
    if upd:
        tags[TAG_ENV_UPD] = "true"
    if required:
        tags[TAG_ENV_REQUIRED] = "true"
    if prefix is not None:
        tags[TAG_ENV_PREFIX] = prefix
    if key is not None:
        tags[TAG_KEY] = key
    return field(metadata=tags, **kwargs)


@dataclass
class FieldMeta:
    """
    Binding metadata for one field, valid for a single pass.

    ``owner`` and ``attr`` locate the storage; the engine writes through
    :meth:`set` and keeps no reference once the pass ends.
    """

    owner: Any
    attr: str
    field_type: Any
    field_name: str
    env_list: List[str] = field(default_factory=list)
    def_value: Optional[str] = None
    layout: Optional[str] = None
    separator: str = DEFAULT_SEPARATOR
    description: str = ""
    updatable: bool = False
    required: bool = False

    @property
    def value(self) -> Any:
        return getattr(self.owner, self.attr)

    def set(self, value: Any) -> None:
        setattr(self.owner, self.attr, value)

    def is_field_value_zero(self) -> bool:
        return is_zero(self.value)


@dataclass
class _Node:
    value: Any
    prefix: str
    path: str


def _type_hints(cls) -> dict:
    return typing.get_type_hints(cls, include_extras=True)


def read_struct_metadata(cfg_root: Any) -> List[FieldMeta]:
    """
    Walk ``cfg_root`` and return the metadata of every bindable field.

    Nested dataclasses are expanded depth-first after their parent's own
    fields, with ``env-prefix`` values concatenated along the way. Types with
    a registered converter are treated as leaves. Private (``_name``) fields
    and fields of frozen dataclasses are skipped. The target is not modified.

    Raises:
        UnsupportedRootKind: If the root or a nested value is not a dataclass instance.
            A nested field holding ``None`` is skipped instead.
        CircularReference: If the same instance is reached twice.
    """
    queue = [_Node(cfg_root, "", "")]
    visited = set()
    metas: List[FieldMeta] = []

    # the queue grows while it is iterated
    for node in queue:
        obj = node.value
        if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
            raise UnsupportedRootKind(type(obj).__name__, node.path)
        if id(obj) in visited:
            raise CircularReference(node.path)
        visited.add(id(obj))

        hints = _type_hints(type(obj))
        frozen = type(obj).__dataclass_params__.frozen

        for f in dataclasses.fields(obj):
            if f.name.startswith("_"):
                continue

            tags = f.metadata
            field_type = hints.get(f.name, f.type)
            base, _ = resolve_type(field_type)
            path = f"{node.path}.{f.name}" if node.path else f.name

            # nested structure, unless it is a registered leaf type
            if is_struct_type(base) and get_converter(base) is None:
                if getattr(obj, f.name) is None:
                    log.debug(f"Skipping unset nested structure '{path}'")
                    continue
                queue.append(_Node(getattr(obj, f.name), node.prefix + tags.get(TAG_ENV_PREFIX, ""), path))
                continue

            if frozen:
                continue

            env_list: List[str] = []
            envs = tags.get(TAG_ENV)
            if envs:
                env_list = [node.prefix + name for name in envs.split(DEFAULT_SEPARATOR)]

            metas.append(FieldMeta(
                owner=obj,
                attr=f.name,
                field_type=field_type,
                field_name=path,
                env_list=env_list,
                def_value=tags.get(TAG_ENV_DEFAULT),
                layout=tags.get(TAG_ENV_LAYOUT),
                separator=tags.get(TAG_ENV_SEPARATOR) or DEFAULT_SEPARATOR,
                description=tags.get(TAG_ENV_DESCRIPTION, ""),
                updatable=TAG_ENV_UPD in tags,
                required=TAG_ENV_REQUIRED in tags,
            ))

    log.debug(f"Read metadata for {len(metas)} fields of {type(cfg_root).__name__}")
    return metas


def get_description(cfg: Any, header: Optional[str] = None) -> str:
    """
    Render a usage listing of the environment variables ``cfg`` reads.

    Each name is followed by its type, then an indented line with the
    description, default and flags. Extra names of a field are listed as
    alternatives to the first one.
    """
    lines = [header if header is not None else "Environment variables:"]
    for meta in read_struct_metadata(cfg):
        if not meta.env_list:
            continue
        details = [meta.description] if meta.description else []
        if meta.def_value is not None:
            details.append(f'(default "{meta.def_value}")')
        if meta.required:
            details.append("[required]")
        if meta.updatable:
            details.append("[updatable]")
        first = meta.env_list[0]
        for idx, env in enumerate(meta.env_list):
            alt = f" (alternative to {first})" if idx else ""
            lines.append(f"  {env}{alt} {type_name(meta.field_type)}")
            lines.append("    \t" + " ".join(details))
    return "\n".join(lines)
