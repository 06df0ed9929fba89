"""
Form Engine Errors

Only developer-time contract violations are raised. Field and container
validation failures are reported as data (see validation.py).
"""

from typing import Optional


class FormcraftError(Exception):
    """Base class for all exceptions raised by the form engine."""


class ConfigurationError(FormcraftError):
    """
    Raised when a form definition violates the schema contract.

    Examples: an array without an item template, duplicate sibling names,
    or a $storePath entry that points at a child that does not exist.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        self.message = message
        location = f" at '{path}'" if path else ""
        super().__init__(f"{message}{location}")


class FormParseError(ConfigurationError):
    """Raised when a YAML form definition cannot be parsed."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        line: Optional[int] = None,
        path: Optional[str] = None,
    ):
        self.source = source
        self.line = line
        location = ""
        if source:
            location = f" in {source}"
        if line:
            location += f" at line {line}"
        super().__init__(f"{message}{location}", path)
