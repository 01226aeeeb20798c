"""imggen utilities."""

from imggen.utils.text import format_error_message

__all__ = ["format_error_message"]
