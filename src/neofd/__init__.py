"""neofd: fd-compatible file finder with layered ignore-file support."""

__version__ = "0.1.0"


class NfdError(Exception):
    """User-facing CLI error.

    Raised for invalid arguments, missing search roots, and other
    recoverable input errors. The message is printed to stderr
    and the process exits with code 1.
    """
