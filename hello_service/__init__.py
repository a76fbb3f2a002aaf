"""Hello World web service and its container deployment toolkit."""

__version__ = "0.1.0"
