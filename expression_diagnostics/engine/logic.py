"""Prerequisite logic AST.

Expression prerequisites arrive as JSON-Logic dicts. ``parse_logic`` turns
them into a closed set of node types so analyzers dispatch on node kind
through a ``LogicVisitor`` instead of probing dict shapes.

Node kinds:
- and / or / not: boolean structure
- comparison: ``{"<op>": [{"var": path}, number]}`` on one variable
- condition_ref: reference to a named condition (resolved elsewhere)
- literal: constant true/false/number
- opaque: anything else (var-vs-var comparisons, arithmetic, ...)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar

from expression_diagnostics.models.common import GateOperator

_FLIPPED: dict[GateOperator, GateOperator] = {
    GateOperator.GTE: GateOperator.LTE,
    GateOperator.GT: GateOperator.LT,
    GateOperator.LTE: GateOperator.GTE,
    GateOperator.LT: GateOperator.GT,
}

_NOT_KEYS = ("!", "not")
_CONDITION_REF_KEYS = ("condition_ref", "conditionRef")


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AndNode:
    kind: ClassVar[str] = "and"
    children: tuple[LogicNode, ...]


@dataclass(frozen=True)
class OrNode:
    kind: ClassVar[str] = "or"
    children: tuple[LogicNode, ...]


@dataclass(frozen=True)
class NotNode:
    kind: ClassVar[str] = "not"
    child: LogicNode


@dataclass(frozen=True)
class Comparison:
    """``var_path <operator> threshold`` with the variable on the left."""

    kind: ClassVar[str] = "comparison"
    var_path: str
    operator: GateOperator
    threshold: float


@dataclass(frozen=True)
class ConditionRef:
    kind: ClassVar[str] = "condition_ref"
    ref: str


@dataclass(frozen=True)
class Literal:
    kind: ClassVar[str] = "literal"
    value: object


@dataclass(frozen=True)
class Opaque:
    """Node the diagnostics do not interpret; kept for warnings."""

    kind: ClassVar[str] = "opaque"
    operator: str
    raw: object


LogicNode = AndNode | OrNode | NotNode | Comparison | ConditionRef | Literal | Opaque


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _var_path(operand: object) -> str | None:
    if isinstance(operand, dict) and len(operand) == 1 and "var" in operand:
        path = operand["var"]
        if isinstance(path, list) and path:
            path = path[0]
        if isinstance(path, str) and path:
            return path
    return None


def _parse_comparison(operator: GateOperator, args: object, raw: object) -> LogicNode:
    if not isinstance(args, list):
        return Opaque(operator.value, raw)

    if len(args) == 2:
        left, right = args
        path = _var_path(left)
        if path is not None and _is_number(right):
            return Comparison(path, operator, float(right))
        path = _var_path(right)
        if path is not None and _is_number(left):
            # ``0.2 <= x`` reads as ``x >= 0.2``
            return Comparison(path, _FLIPPED[operator], float(left))

    if len(args) == 3 and operator in (GateOperator.LTE, GateOperator.LT):
        # Between form: {"<=": [lo, {"var": x}, hi]}
        lo, middle, hi = args
        path = _var_path(middle)
        if path is not None and _is_number(lo) and _is_number(hi):
            return AndNode((
                Comparison(path, _FLIPPED[operator], float(lo)),
                Comparison(path, operator, float(hi)),
            ))

    return Opaque(operator.value, raw)


def parse_logic(raw: object) -> LogicNode:
    """Parse a JSON-Logic value into a LogicNode.

    A list is an implicit AND (prerequisite arrays). Unrecognized shapes
    become ``Opaque`` rather than raising.
    """
    if isinstance(raw, list):
        return AndNode(tuple(parse_logic(item) for item in raw))

    if not isinstance(raw, dict):
        return Literal(raw)

    if len(raw) != 1:
        return Opaque("<multi-key>", raw)

    key, args = next(iter(raw.items()))

    if key in ("and", "or"):
        items = args if isinstance(args, list) else [args]
        children = tuple(parse_logic(item) for item in items)
        return AndNode(children) if key == "and" else OrNode(children)

    if key in _NOT_KEYS:
        inner = args[0] if isinstance(args, list) and args else args
        return NotNode(parse_logic(inner))

    if key in _CONDITION_REF_KEYS:
        return ConditionRef(str(args))

    try:
        operator = GateOperator(key)
    except ValueError:
        return Opaque(str(key), raw)
    return _parse_comparison(operator, args, raw)


# ---------------------------------------------------------------------------
# Visitor
# ---------------------------------------------------------------------------

T = TypeVar("T")


class LogicVisitor(Generic[T]):
    """Dispatch on node kind to ``visit_<kind>`` methods.

    Unhandled kinds fall through to ``generic_visit``.
    """

    def visit(self, node: LogicNode) -> T:
        method = getattr(self, f"visit_{node.kind}", self.generic_visit)
        return method(node)

    def generic_visit(self, node: LogicNode) -> T:  # noqa: ARG002
        return None  # type: ignore[return-value]


def iter_comparisons(node: LogicNode):
    """Yield every Comparison in the subtree, in document order."""
    if isinstance(node, Comparison):
        yield node
    elif isinstance(node, (AndNode, OrNode)):
        for child in node.children:
            yield from iter_comparisons(child)
    elif isinstance(node, NotNode):
        yield from iter_comparisons(node.child)
