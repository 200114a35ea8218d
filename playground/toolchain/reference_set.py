"""
playground/toolchain/reference_set.py

Standard-library modules submitted programs are compiled and run against.
"""

from __future__ import annotations

REFERENCE_MODULES: frozenset[str] = frozenset(
    {
        "__future__",
        "abc",
        "array",
        "bisect",
        "calendar",
        "cmath",
        "collections",
        "contextlib",
        "copy",
        "dataclasses",
        "datetime",
        "decimal",
        "enum",
        "fractions",
        "functools",
        "heapq",
        "io",
        "itertools",
        "json",
        "math",
        "numbers",
        "operator",
        "random",
        "re",
        "statistics",
        "string",
        "sys",
        "textwrap",
        "time",
        "typing",
        "unicodedata",
    }
)


def top_level_name(module_name: str) -> str:
    return module_name.partition(".")[0]


def is_resolvable(module_name: str) -> bool:
    """
    Return True when ``module_name`` (or its package) is in the reference set.
    """

    return top_level_name(module_name) in REFERENCE_MODULES
