"""
Data model of IF expressions.

An expression is kept as its source text plus a postfix token sequence;
operand tokens hold literals, strings with embedded tags, or variable
references.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..variables import VariableReference


class Operator(Enum):
    """Expression operators keyed by their exact source text."""
    OPEN = "("
    CLOSE = ")"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    ADD = "+"
    SUB = "-"
    HAS = "HAS"
    CONTAINS = "~="
    EQ = "=="
    STRICT_EQ = "==="
    NE = "!="
    STRICT_NE = "!=="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    NOT = "!"
    AND = "AND"
    OR = "OR"
    XOR = "XOR"

    @property
    def precedence(self) -> int:
        return PRECEDENCE[self]


# lower binds tighter
PRECEDENCE: Dict[Operator, int] = {
    Operator.OPEN: -1,
    Operator.MUL: 1,
    Operator.DIV: 1,
    Operator.MOD: 1,
    Operator.ADD: 2,
    Operator.SUB: 2,
    Operator.HAS: 3,
    Operator.CONTAINS: 3,
    Operator.EQ: 4,
    Operator.STRICT_EQ: 4,
    Operator.NE: 4,
    Operator.STRICT_NE: 4,
    Operator.LT: 4,
    Operator.GT: 4,
    Operator.LE: 4,
    Operator.GE: 4,
    Operator.NOT: 5,
    Operator.AND: 6,
    Operator.OR: 7,
    Operator.XOR: 7,
    Operator.CLOSE: 99,
}

OPERATORS_BY_TEXT: Dict[str, Operator] = {op.value: op for op in Operator}


@dataclass(frozen=True)
class ExprToken:
    """
    Operator or operand of an expression.

    Exactly one of ``op`` / ``value`` is meaningful, as told by ``is_operator``.
    """
    op: Optional[Operator] = None
    value: Any = None

    @property
    def is_operator(self) -> bool:
        return self.op is not None

    @classmethod
    def operator(cls, op: Operator) -> ExprToken:
        return cls(op=op)

    @classmethod
    def operand(cls, value: Any) -> ExprToken:
        return cls(value=value)

    def to_source(self) -> str:
        if self.is_operator:
            return self.op.value
        if isinstance(self.value, VariableReference):
            return self.value.to_source()
        if self.value is None:
            return "null"
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        if isinstance(self.value, str):
            return f"'{self.value}'"
        return str(self.value)

    def to_dict(self) -> Dict[str, Any]:
        if self.is_operator:
            return {"op": self.op.value}
        if isinstance(self.value, VariableReference):
            return {"ref": self.value.to_dict()}
        return {"value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ExprToken:
        if "op" in data:
            return cls.operator(OPERATORS_BY_TEXT[data["op"]])
        if "ref" in data:
            return cls.operand(VariableReference.from_dict(data["ref"]))
        return cls.operand(data.get("value"))

    def __repr__(self) -> str:
        return f"ExprToken({self.to_source()})"


@dataclass(frozen=True)
class Expression:
    """Compiled IF condition."""
    source: str
    postfix: Tuple[ExprToken, ...]

    def postfix_text(self) -> str:
        """Space-joined postfix form, mostly for diagnostics and tests."""
        return " ".join(t.to_source() for t in self.postfix)

    def references(self) -> List[VariableReference]:
        return [t.value for t in self.postfix if not t.is_operator and isinstance(t.value, VariableReference)]

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "postfix": [t.to_dict() for t in self.postfix]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Expression:
        return cls(source=data["source"], postfix=tuple(ExprToken.from_dict(t) for t in data["postfix"]))


__all__ = ["Operator", "PRECEDENCE", "OPERATORS_BY_TEXT", "ExprToken", "Expression"]
