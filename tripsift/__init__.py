"""Trip-planning chat extraction with multi-provider fallback."""

__version__ = "0.3.0"
