"""
Feature inventory of a parsed template, used for reporting only.
"""

from __future__ import annotations

from typing import Iterable, List, Set

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


def _walk(nodes: Iterable[TemplateNode], found: Set[str]) -> None:
    for node in nodes:
        if isinstance(node, TextNode):
            found.add("node:text")
        elif isinstance(node, InterpolationNode):
            found.add("node:interpolation")
        elif isinstance(node, IfNode):
            found.add("directive:if")
            if node.else_ifs:
                found.add("directive:elseif")
            if node.else_body:
                found.add("directive:else")
            _walk(node.then_body, found)
            for branch in node.else_ifs:
                _walk(branch.body, found)
            _walk(node.else_body, found)
        elif isinstance(node, ListNode):
            found.add("directive:list")
            _walk(node.body, found)
        elif isinstance(node, AssignNode):
            found.add("directive:local" if node.local else "directive:assign")
        elif isinstance(node, SettingNode):
            found.add("directive:setting")
        elif isinstance(node, FunctionNode):
            found.add("directive:function")
            _walk(node.body, found)
        elif isinstance(node, BareDirectiveNode):
            found.add(f"directive:{node.name}")
        elif isinstance(node, MacroCallNode):
            found.add("call:macro")


def detect_features(doc: Document, helpers: Iterable[str] = ()) -> List[str]:
    """
    Tag the node kinds and helper names a document uses.

    Returns:
        Sorted tags such as 'directive:list', 'node:text', 'helper:default'
    """
    found: Set[str] = set()
    _walk(doc.nodes, found)
    found.update(f"helper:{h}" for h in helpers)
    return sorted(found)


__all__ = ["detect_features"]
