"""
SLIM abstract syntax tree
Immutable node records produced by the parser and consumed by the interpreter
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Optional, Tuple, Union

if TYPE_CHECKING:
    from parsing import SourceSpan


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class NumberLiteral:
    type: ClassVar[str] = "NUMBER"
    value: Union[int, float]
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class StringLiteral:
    type: ClassVar[str] = "STRING"
    value: str
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class Identifier:
    type: ClassVar[str] = "IDENTIFIER"
    name: str
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class Unary:
    """Prefix operation; op is '-' or 'not' ('!' is normalized to 'not')"""
    type: ClassVar[str] = "UNARY"
    op: str
    operand: "Expr"
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class Binary:
    type: ClassVar[str] = "BINARY"
    op: str
    left: "Expr"
    right: "Expr"
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class Grouping:
    type: ClassVar[str] = "GROUPING"
    expression: "Expr"
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class Call:
    type: ClassVar[str] = "CALL"
    callee: "Expr"
    arguments: Tuple["Expr", ...]
    span: Optional["SourceSpan"] = field(default=None, compare=False)


Expr = Union[NumberLiteral, StringLiteral, Identifier, Unary, Binary, Grouping, Call]


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class Let:
    type: ClassVar[str] = "LET"
    name: str
    initializer: Optional[Expr] = None
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class Fn:
    """Function declaration; body is the statement sequence itself, not a Block"""
    type: ClassVar[str] = "FN"
    name: str
    params: Tuple[str, ...]
    body: Tuple["Stmt", ...]
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class If:
    type: ClassVar[str] = "IF"
    condition: Expr
    then_branch: "Stmt"
    else_branch: Optional["Stmt"] = None
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class While:
    type: ClassVar[str] = "WHILE"
    condition: Expr
    body: "Stmt"
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class Block:
    type: ClassVar[str] = "BLOCK"
    statements: Tuple["Stmt", ...]
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class Assign:
    """name op value; op is one of '=', '+=', '-=', '*=', '/='"""
    type: ClassVar[str] = "ASSIGN"
    name: str
    op: str
    value: Expr
    span: Optional["SourceSpan"] = field(default=None, compare=False)


@dataclass(frozen=True)
class ExprStmt:
    type: ClassVar[str] = "EXPR_STMT"
    expression: Expr
    span: Optional["SourceSpan"] = field(default=None, compare=False)


Stmt = Union[Let, Fn, If, While, Block, Assign, ExprStmt]


# ============================================================================
# PRETTY PRINTING
# ============================================================================

def node_children(node) -> Tuple:
    """Direct sub-nodes of a node, in source order"""
    if isinstance(node, Unary):
        return (node.operand,)
    if isinstance(node, Binary):
        return (node.left, node.right)
    if isinstance(node, Grouping):
        return (node.expression,)
    if isinstance(node, Call):
        return (node.callee,) + node.arguments
    if isinstance(node, Let):
        return (node.initializer,) if node.initializer is not None else ()
    if isinstance(node, Fn):
        return node.body
    if isinstance(node, If):
        if node.else_branch is not None:
            return (node.condition, node.then_branch, node.else_branch)
        return (node.condition, node.then_branch)
    if isinstance(node, While):
        return (node.condition, node.body)
    if isinstance(node, Block):
        return node.statements
    if isinstance(node, Assign):
        return (node.value,)
    if isinstance(node, ExprStmt):
        return (node.expression,)
    return ()


def _node_label(node) -> str:
    if isinstance(node, (NumberLiteral, StringLiteral)):
        return f"{node.type}({node.value!r})"
    if isinstance(node, Identifier):
        return f"{node.type}({node.name})"
    if isinstance(node, (Unary, Binary)):
        return f"{node.type}({node.op})"
    if isinstance(node, Let):
        return f"{node.type}({node.name})"
    if isinstance(node, Fn):
        return f"{node.type}({node.name}({', '.join(node.params)}))"
    if isinstance(node, Assign):
        return f"{node.type}({node.name} {node.op})"
    return node.type


def pretty_print_ast(node, indent: int = 0) -> str:
    """Pretty print an AST node as an indented tree"""
    lines = ["  " * indent + _node_label(node)]
    for child in node_children(node):
        lines.append(pretty_print_ast(child, indent + 1))
    return "\n".join(lines)
