"""skill-sync: keep a local skill catalog in step with its upstream sources."""

__version__ = "0.1.0"
