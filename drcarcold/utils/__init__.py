"""
Utility functions for the drcarcold application.

- text.py: slugs with CJK support, schedule time parsing, keyword helpers
"""

from .text import (
    slugify_title,
    unique_slug,
    is_valid_time,
    parse_times,
    split_keywords,
)

__all__ = [
    "slugify_title",
    "unique_slug",
    "is_valid_time",
    "parse_times",
    "split_keywords",
]
