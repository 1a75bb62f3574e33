"""Route D-Bus signals to process notifications and shell commands."""

__version__ = "0.3.0"
