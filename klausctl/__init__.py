"""Instance layout, configuration, config generation and tool results for local klaus agents."""

__version__ = "0.1.0"