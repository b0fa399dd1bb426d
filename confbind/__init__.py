# confbind/__init__.py
"""
confbind – typed settings from config files and environment variables.

Declare a dataclass, annotate its fields with ``env_field`` from
``confbind.struct_reader``, then bind it with ``read_config``, ``read_env``
or ``update_env`` from ``confbind.loader``. Errors live in
``confbind.exceptions``; extra leaf types are registered with
``confbind.parsers.register_converter``.
"""

__version__ = "0.1.0"
