"""Project-Upgrader: move projects to the multi-source (config v3) layout."""

__version__ = "0.3.0"
