"""Authentication session controller backed by a remote identity service."""

__version__ = "0.1.0"
