"""Content source adapters."""
