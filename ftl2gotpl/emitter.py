"""
Go template emitter.

Walks a parsed Document in order and writes Go text/template source.
Every embedded expression goes through ExpressionMapper with a snapshot of
the local names visible at that point; the helper names it reports are
merged into a document-wide set.
"""

from __future__ import annotations

from typing import Iterable, List, Set

from .diagnostics import (
    Diagnostic,
    Position,
    EMIT_EXPRESSION_MAP,
    EMIT_UNSUPPORTED_DIRECTIVE_NODE,
    EMIT_UNSUPPORTED_FUNCTION,
    EMIT_UNSUPPORTED_MACRO_CALL,
    EMIT_UNSUPPORTED_RETURN,
)
from .expressions import ExpressionError, ExpressionMapper
from .nodes import (
    AssignNode,
    BareDirectiveNode,
    Document,
    FunctionNode,
    IfNode,
    InterpolationNode,
    ListNode,
    MacroCallNode,
    SettingNode,
    TemplateNode,
    TextNode,
)


class ScopeStack:
    """
    Nested sets of local variable names.

    The root frame holds top-level declarations and is never popped.
    """

    def __init__(self) -> None:
        self._frames: List[Set[str]] = [set()]

    def __len__(self) -> int:
        return len(self._frames)

    def push(self) -> None:
        self._frames.append(set())

    def pop(self) -> None:
        if len(self._frames) > 1:
            self._frames.pop()

    def declare(self, name: str) -> None:
        """Register name in the innermost frame."""
        self._frames[-1].add(name)

    def is_local(self, name: str) -> bool:
        return any(name in frame for frame in reversed(self._frames))

    def snapshot(self) -> Set[str]:
        """Union of all active frames."""
        names: Set[str] = set()
        for frame in self._frames:
            names |= frame
        return names


class Emitter:
    """
    Emission state for exactly one document.

    Attributes:
        file: Display name used in diagnostics
        helpers: Helper names required by the emitted output
        scopes: Local variable scopes
    """

    def __init__(self, file: str):
        self.file = file
        self.helpers: Set[str] = set()
        self.scopes = ScopeStack()
        self._out: List[str] = []

    def emit_document(self, doc: Document) -> str:
        """
        Emit the whole document and return the output text.

        Raises:
            Diagnostic: On the first unsupported node or expression
        """
        self.emit_nodes(doc.nodes)
        return self.output

    @property
    def output(self) -> str:
        return "".join(self._out)

    def helper_list(self) -> List[str]:
        return sorted(self.helpers)

    def emit_nodes(self, nodes: Iterable[TemplateNode]) -> None:
        for node in nodes:
            self.emit_node(node)

    def emit_node(self, node: TemplateNode) -> None:
        """Dispatch one node to its emitter."""
        if isinstance(node, TextNode):
            self._out.append(node.text)
        elif isinstance(node, InterpolationNode):
            self.write_action(self.map_expr(node.expr, node.position))
        elif isinstance(node, IfNode):
            self._emit_if(node)
        elif isinstance(node, ListNode):
            self._emit_list(node)
        elif isinstance(node, AssignNode):
            self._emit_assign(node)
        elif isinstance(node, SettingNode):
            self.write_comment(f"ftl setting ignored: {node.raw}")
        elif isinstance(node, BareDirectiveNode):
            self._emit_bare_directive(node)
        elif isinstance(node, FunctionNode):
            raise Diagnostic.at(
                EMIT_UNSUPPORTED_FUNCTION, self.file, node.position,
                f'unsupported FreeMarker function definition "{node.name}"',
            )
        elif isinstance(node, MacroCallNode):
            raise Diagnostic.at(
                EMIT_UNSUPPORTED_MACRO_CALL, self.file, node.position,
                f"unsupported FreeMarker macro call <@{node.name}>",
            )
        else:
            raise TypeError(f"Unknown template node type: {type(node).__name__}")

    # ---- block emitters ----

    def _emit_if(self, node: IfNode) -> None:
        self.write_action(f"if {self.map_expr(node.cond, node.position)}")
        self._emit_scoped(node.then_body)

        for branch in node.else_ifs:
            self.write_action(f"else if {self.map_expr(branch.cond, branch.position)}")
            self._emit_scoped(branch.body)

        if node.else_body:
            self.write_action("else")
            self._emit_scoped(node.else_body)

        self.write_action("end")

    def _emit_list(self, node: ListNode) -> None:
        seq = self.map_expr(node.seq_expr, node.position)
        index_var = f"{node.item_var}_index"
        self.write_action(f"range ${index_var}, ${node.item_var} := {seq}")

        self.scopes.push()
        try:
            self.scopes.declare(index_var)
            self.scopes.declare(node.item_var)
            self.emit_nodes(node.body)
        finally:
            self.scopes.pop()

        self.write_action("end")

    def _emit_assign(self, node: AssignNode) -> None:
        expr = self.map_expr(node.expr, node.position)
        if self.scopes.is_local(node.name):
            self.write_action(f"${node.name} = {expr}")
            return
        self.write_action(f"${node.name} := {expr}")
        self.scopes.declare(node.name)

    def _emit_bare_directive(self, node: BareDirectiveNode) -> None:
        if node.name == "break":
            self.write_action("break")
            return
        if node.name == "return":
            raise Diagnostic.at(
                EMIT_UNSUPPORTED_RETURN, self.file, node.position,
                "unsupported <#return> outside converted function semantics", node.args,
            )
        raise Diagnostic.at(
            EMIT_UNSUPPORTED_DIRECTIVE_NODE, self.file, node.position,
            f'unsupported directive node "{node.name}"', node.args,
        )

    def _emit_scoped(self, nodes: Iterable[TemplateNode]) -> None:
        """Emit a block body inside its own scope frame."""
        self.scopes.push()
        try:
            self.emit_nodes(nodes)
        finally:
            self.scopes.pop()

    # ---- output primitives ----

    def map_expr(self, expr: str, pos: Position) -> str:
        """Map an expression, turning rewriter errors into positioned diagnostics."""
        mapper = ExpressionMapper(self.scopes.snapshot())
        try:
            mapped = mapper.map_expr(expr)
        except ExpressionError as e:
            raise Diagnostic.at(EMIT_EXPRESSION_MAP, self.file, pos, str(e), expr) from e
        except RecursionError as e:
            raise Diagnostic.at(
                EMIT_EXPRESSION_MAP, self.file, pos, "expression nested too deeply", expr
            ) from e
        self.helpers |= mapper.helpers
        return mapped

    def write_action(self, action: str) -> None:
        self._out.append("{{" + action + "}}")

    def write_comment(self, text: str) -> None:
        """Write a template comment; '*/' inside the text is broken up."""
        self._out.append("{{/* " + text.replace("*/", "* /") + " */}}")


__all__ = ["ScopeStack", "Emitter"]
