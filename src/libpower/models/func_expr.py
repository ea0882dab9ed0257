"""Boolean function expressions (Liberty ``function`` / ``when`` attributes).

Expressions are trees of ``FuncExpr`` nodes. A parent owns its subexpressions;
``delete_subexprs`` tears the tree down explicitly so a discarded condition
does not keep its operands reachable.
"""

from enum import Enum
from typing import Mapping, Optional


class FuncOp(str, Enum):
    PORT = "port"
    NOT = "not"
    AND = "and"
    OR = "or"
    XOR = "xor"
    ONE = "one"
    ZERO = "zero"


_BINARY_SYMBOLS = {FuncOp.AND: "&", FuncOp.OR: "|", FuncOp.XOR: "^"}

# Lower binds looser
_PRECEDENCE = {FuncOp.OR: 1, FuncOp.XOR: 2, FuncOp.AND: 3}


class FuncExpr:
    """A node of a boolean expression tree."""

    __slots__ = ("op", "left", "right", "port")

    def __init__(
        self,
        op: FuncOp,
        left: Optional["FuncExpr"] = None,
        right: Optional["FuncExpr"] = None,
        port: Optional[str] = None,
    ):
        self.op = op
        self.left = left
        self.right = right
        self.port = port

    @classmethod
    def make_port(cls, name: str) -> "FuncExpr":
        return cls(FuncOp.PORT, port=name)

    @classmethod
    def make_not(cls, expr: "FuncExpr") -> "FuncExpr":
        return cls(FuncOp.NOT, left=expr)

    @classmethod
    def make_and(cls, left: "FuncExpr", right: "FuncExpr") -> "FuncExpr":
        return cls(FuncOp.AND, left, right)

    @classmethod
    def make_or(cls, left: "FuncExpr", right: "FuncExpr") -> "FuncExpr":
        return cls(FuncOp.OR, left, right)

    @classmethod
    def make_xor(cls, left: "FuncExpr", right: "FuncExpr") -> "FuncExpr":
        return cls(FuncOp.XOR, left, right)

    @classmethod
    def make_one(cls) -> "FuncExpr":
        return cls(FuncOp.ONE)

    @classmethod
    def make_zero(cls) -> "FuncExpr":
        return cls(FuncOp.ZERO)

    def ports(self) -> set[str]:
        """Returns the names of all ports referenced by the expression."""
        if self.op is FuncOp.PORT:
            return {self.port}
        names: set[str] = set()
        for child in (self.left, self.right):
            if child is not None:
                names |= child.ports()
        return names

    def evaluate(self, values: Mapping[str, bool]) -> bool:
        """Evaluates the expression with the given port values.

        Raises:
            KeyError: If a referenced port has no value.
        """
        op = self.op
        if op is FuncOp.PORT:
            return bool(values[self.port])
        if op is FuncOp.ONE:
            return True
        if op is FuncOp.ZERO:
            return False
        if op is FuncOp.NOT:
            return not self.left.evaluate(values)
        left = self.left.evaluate(values)
        right = self.right.evaluate(values)
        if op is FuncOp.AND:
            return left and right
        if op is FuncOp.OR:
            return left or right
        return left != right

    def delete_subexprs(self) -> int:
        """Detaches and tears down all subexpressions of this node.

        Returns:
            The number of nodes released, including this one. Calling it again
            releases only the (now childless) root.
        """
        count = 1
        for child in (self.left, self.right):
            if child is not None:
                count += child.delete_subexprs()
        self.left = None
        self.right = None
        return count

    def _to_string(self, parent_precedence: int) -> str:
        op = self.op
        if op is FuncOp.PORT:
            return self.port
        if op is FuncOp.ONE:
            return "1"
        if op is FuncOp.ZERO:
            return "0"
        if op is FuncOp.NOT:
            operand = self.left
            if operand.op in (FuncOp.PORT, FuncOp.ONE, FuncOp.ZERO, FuncOp.NOT):
                return "!" + operand._to_string(0)
            return "!(" + operand._to_string(0) + ")"
        precedence = _PRECEDENCE[op]
        text = (
            f"{self.left._to_string(precedence)}"
            f"{_BINARY_SYMBOLS[op]}"
            f"{self.right._to_string(precedence + 1)}"
        )
        if precedence < parent_precedence:
            return f"({text})"
        return text

    def __str__(self) -> str:
        return self._to_string(0)

    def __repr__(self) -> str:
        return f"FuncExpr({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FuncExpr):
            return NotImplemented
        return (
            self.op is other.op
            and self.port == other.port
            and self.left == other.left
            and self.right == other.right
        )

    __hash__ = None
