"""Detection of web cache poisoning through unkeyed request headers."""

__version__ = "1"