"""Liberty boolean expression parser using Lark.

Turns ``function`` and ``when`` attribute strings into ``FuncExpr`` trees.
"""

import functools
import logging
from pathlib import Path
from typing import Iterable, Optional

from lark import Lark, Transformer
from lark.exceptions import LarkError

from ..exceptions import FuncExprError
from ..models.func_expr import FuncExpr

logger = logging.getLogger(__name__)

GRAMMAR_PATH = Path(__file__).parent / "func_expr.lark"


@functools.cache
def _get_lark_parser() -> Lark:
    """Returns a cached Lark parser instance for boolean expressions."""
    return Lark(GRAMMAR_PATH.read_text(), parser="lalr", maybe_placeholders=False)


class FuncExprTransformer(Transformer):
    """Builds FuncExpr nodes bottom-up from the parse tree."""

    def port(self, items) -> FuncExpr:
        return FuncExpr.make_port(str(items[0]))

    def one(self, items) -> FuncExpr:
        return FuncExpr.make_one()

    def zero(self, items) -> FuncExpr:
        return FuncExpr.make_zero()

    def not_(self, items) -> FuncExpr:
        return FuncExpr.make_not(items[0])

    def and_(self, items) -> FuncExpr:
        return FuncExpr.make_and(items[0], items[1])

    def or_(self, items) -> FuncExpr:
        return FuncExpr.make_or(items[0], items[1])

    def xor(self, items) -> FuncExpr:
        return FuncExpr.make_xor(items[0], items[1])


def parse_func_expr(text: str, port_names: Optional[Iterable[str]] = None) -> FuncExpr:
    """Parses a Liberty boolean expression.

    Args:
        text: The expression, with or without surrounding quotes.
        port_names: If given, references to other names are logged as warnings.

    Returns:
        The expression tree.

    Raises:
        FuncExprError: If the text is empty or not a valid expression.
    """
    # Only double quotes: a trailing ' is the postfix NOT operator
    stripped = text.strip().strip('"').strip() if text else ""
    if not stripped:
        raise FuncExprError(text or "", "empty expression")
    try:
        tree = _get_lark_parser().parse(stripped)
    except LarkError as e:
        raise FuncExprError(stripped, str(e).splitlines()[0]) from e
    expr = FuncExprTransformer().transform(tree)

    if port_names is not None:
        unknown = expr.ports() - set(port_names)
        if unknown:
            logger.warning(f"Expression '{stripped}' references unknown ports {sorted(unknown)}")
    return expr
