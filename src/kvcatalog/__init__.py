"""Library catalog kept in a primitive key-value store."""

__version__ = "0.1.0"
