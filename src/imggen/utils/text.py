"""Text helpers shared by the CLI and the batch processor."""

from __future__ import annotations


def format_error_message(error: BaseException) -> str:
    """Return a one-line, human-readable description of ``error``.

    Exceptions with an empty message (e.g. a bare ``TimeoutError()``) are
    reported by their class name so the output is never blank.

    Args:
        error: The exception to describe

    Returns:
        The exception message, or its class name when the message is empty
    """
    message = str(error).strip()
    if not message:
        return type(error).__name__
    # Multi-line messages (tracebacks from remote APIs) keep only the first line
    return message.splitlines()[0]
