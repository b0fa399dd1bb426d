"""
confbind.argparse_integration
-----------------------------
Optional helper for scripts that take the config file path from ``-c``.

Functions:
  - build_arg_parser(cfg=None)
  - load_config_from_args(cfg, ...)
"""

import argparse

from .loader import load_config
from .struct_reader import get_description


def build_arg_parser(cfg=None, description=None):
    """
    Parser with a ``-c/--config`` option.

    When ``cfg`` is given, the help epilog lists the environment variables it reads.
    """
    parser = argparse.ArgumentParser(
        description=description,
        epilog=get_description(cfg) if cfg is not None else None,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('-c', '--config', help="Config File Location")
    return parser


def load_config_from_args(cfg, args=None, provenance=None):
    """
    Parse known args and bind ``cfg`` from the ``-c`` file (if any) and the environment.
    Unknown arguments are left for the caller's own parser.
    """
    parser = build_arg_parser(cfg)
    parsed, _ = parser.parse_known_args(args)
    return load_config(parsed.config, cfg, provenance)
