"""Identifiers, category enumerations and entity schemas."""
