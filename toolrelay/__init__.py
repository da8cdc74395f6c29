"""toolrelay -- a chat model wired to external tools through a bounded tool-calling loop."""

__version__ = "0.1.0"
