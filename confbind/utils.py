# confbind/utils.py
"""
confbind.utils
--------------

Helpers shared by the struct reader, the binder and the file loader:
path expansion, type-hint unwrapping and zero-value detection.
"""

import dataclasses
import os
import types
import typing
from datetime import timedelta
from typing import Any, Optional, Tuple


def expand_path(path: Optional[str]) -> Optional[str]:
    """Expand ~ and environment variables in a path string.

    Args:
        path: Path string to expand, or None.

    Returns:
        Expanded path string, or None if input was None.

    Examples:
        >>> expand_path("~/configs/app.yaml")
        '/home/user/configs/app.yaml'
        >>> expand_path("$CONF_DIR/app.yaml")
        '/etc/myapp/app.yaml'
    """
    if path is None:
        return None
    return os.path.expandvars(os.path.expanduser(os.fspath(path)))


def file_extension(path: str) -> str:
    """Return the lower-cased extension, dot included.

    Unlike ``os.path.splitext`` a bare dotfile keeps its name as the
    extension, so ``.env`` yields ``'.env'``.
    """
    base = os.path.basename(path)
    idx = base.rfind(".")
    return base[idx:].lower() if idx >= 0 else ""


def resolve_type(tp: Any) -> Tuple[Any, tuple]:
    """Strip ``Optional[...]`` and ``Annotated[...]`` layers from a type hint.

    Returns:
        ``(base_type, annotated_extras)``. For ``Optional[Annotated[int, X]]``
        that is ``(int, (X,))``.
    """
    extras: tuple = ()
    while True:
        origin = typing.get_origin(tp)
        if origin is typing.Annotated:
            tp, *more = typing.get_args(tp)
            extras += tuple(more)
            continue
        if origin is typing.Union or origin is types.UnionType:
            args = [a for a in typing.get_args(tp) if a is not type(None)]
            if len(args) == 1:
                tp = args[0]
                continue
        return tp, extras


def is_struct_type(tp: Any) -> bool:
    """True for dataclass classes (not instances, not generic aliases)."""
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def type_name(tp: Any) -> str:
    """Short human-readable name of a type hint, used in messages and usage text."""
    base, _ = resolve_type(tp)
    if typing.get_origin(base) is not None:
        return repr(base).replace("typing.", "")
    return getattr(base, "__name__", repr(base))


def is_zero(value: Any) -> bool:
    """Report whether ``value`` is the zero value of its type.

    Zero means: ``None``, ``False``, numeric zero, an empty string, bytes or
    container, a zero ``timedelta``, a tuple made only of zero items, a
    dataclass instance whose fields are all zero, or an object whose class
    defines ``__bool__`` or ``__len__`` and which is falsy. Any other object
    counts as set.
    """
    if value is None:
        return True
    if isinstance(value, (bool, int, float, complex, str, bytes, list, dict, set, frozenset, timedelta)):
        return not value
    if isinstance(value, tuple):
        return all(is_zero(item) for item in value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return all(is_zero(getattr(value, f.name)) for f in dataclasses.fields(value))
    cls = type(value)
    if hasattr(cls, "__bool__") or hasattr(cls, "__len__"):
        return not value
    return False


def has_method(obj: Any, name: str) -> bool:
    """Report whether the class of ``obj`` (or ``obj`` itself, if a class) defines a callable ``name``.

    Instance attributes do not count, so a dataclass field called ``update``
    does not make its owner an updater.
    """
    cls = obj if isinstance(obj, type) else type(obj)
    return callable(getattr(cls, name, None))
