"""Positional text utilities and chapter tree generation."""

from .annotations import resolve_overlap, wrap_labels
from .footnotes import extract_footnotes, inject_footnotes
from .headings import extract_headings
from .serializers import DEFAULT_TREE_FORMATS, TreeFormat, to_json, to_xml
from .tree import generate_tree

__all__ = [
    "resolve_overlap",
    "wrap_labels",
    "extract_footnotes",
    "inject_footnotes",
    "extract_headings",
    "DEFAULT_TREE_FORMATS",
    "TreeFormat",
    "to_json",
    "to_xml",
    "generate_tree",
]
