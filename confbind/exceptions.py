# confbind/exceptions.py
"""
confbind.exceptions
-------------------

Custom exceptions for confbind.

Every binding pass stops at the first error it meets; the exception raised
describes that single failure. Fields bound before it stay bound.
"""


class ConfigError(Exception):
    """
    Base class for every error raised by confbind.
    """


class UnsupportedRootKind(ConfigError):
    """
    Raised when the binding target (or a nested value) is not a dataclass instance.
    """

    def __init__(self, kind, path=""):
        where = f" at '{path}'" if path else ""
        super().__init__(f"wrong type {kind}{where}: expected a dataclass instance")
        self.kind = kind
        self.path = path


class CircularReference(ConfigError):
    """
    Raised when traversal reaches the same dataclass instance twice.
    """

    def __init__(self, path):
        super().__init__(f"structure at '{path}' was already visited (circular reference)")
        self.path = path


class RequiredFieldMissing(ConfigError):
    """
    Raised when a required field has no environment value and is still zero.
    """

    def __init__(self, field_name):
        super().__init__(f"field {field_name!r} is required but the value is not provided")
        self.field_name = field_name


class ConversionFailure(ConfigError):
    """
    Raised when raw text cannot be converted to the field's type.
    """

    def __init__(self, field_name, raw_value, reason):
        super().__init__(f"cannot convert {raw_value!r} for field {field_name!r}: {reason}")
        self.field_name = field_name
        self.raw_value = raw_value
        self.reason = reason


class UnsupportedFieldKind(ConfigError):
    """
    Raised when no setter, converter or built-in parser handles a field's type.
    """

    def __init__(self, field_name, kind):
        super().__init__(f"unsupported type {kind} for field {field_name!r}")
        self.field_name = field_name
        self.kind = kind


class UnsupportedFileFormat(ConfigError):
    """
    Raised when a config file extension has no decoder.
    """

    def __init__(self, extension):
        super().__init__(f"file format '{extension}' is not supported")
        self.extension = extension


class FileParseError(ConfigError):
    """
    Raised when a config file cannot be decoded into the target.
    """

    def __init__(self, path, reason):
        super().__init__(f"Error parsing config file {path}: {reason}")
        self.path = path
        self.reason = reason


class UpdaterFailure(ConfigError):
    """
    Raised when a structure's own ``update()`` hook fails.
    """

    def __init__(self, target, reason):
        super().__init__(f"{target}.update() failed: {reason}")
        self.target = target
        self.reason = reason
