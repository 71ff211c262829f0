"""Job-application tracking backend with remote/local persistence."""

__version__ = "0.1.0"
