"""Low-level PostgreSQL wire protocol: frontend messages, binary value formats, MD5 authentication and SQL escaping."""

__version__ = "0.6.0"

__all__ = [
    "authentication",
    "compound",
    "core",
    "escape",
    "frontend",
    "scalars",
]