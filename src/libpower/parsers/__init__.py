"""Parsers for Liberty files and expressions"""

from .base import BaseParser
from .func_expr import parse_func_expr
from .liberty import LibertyParser

__all__ = [
    "BaseParser",
    "LibertyParser",
    "parse_func_expr",
]
