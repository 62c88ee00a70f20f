"""Shell word expansion, arithmetic, printf formats, field splitting and script detection."""

__version__ = "0.1.0"

__all__ = ["arith", "config", "environ", "expand", "fileutil", "printf", "words"]