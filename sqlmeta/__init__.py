"""Readers of structured database metadata for information_schema, MySQL, Oracle and PostgreSQL."""

__version__ = "0.1.0"