"""
AST nodes for parsed FreeMarker templates.

The node set is closed: one immutable class per supported construct.
Container nodes own their child sequences; there is no sharing between
nodes and no back-references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .diagnostics import Position


@dataclass(frozen=True)
class TemplateNode:
    """Base class for all template AST nodes."""
    position: Position


@dataclass(frozen=True)
class TextNode(TemplateNode):
    """Literal text, emitted as is."""
    text: str


@dataclass(frozen=True)
class InterpolationNode(TemplateNode):
    """${expr} or #{expr} (alt_style)."""
    expr: str
    alt_style: bool = False


@dataclass(frozen=True)
class ElseIfBranch:
    """One <#elseif cond> branch of an if block."""
    position: Position
    cond: str
    body: List[TemplateNode] = field(default_factory=list)


@dataclass(frozen=True)
class IfNode(TemplateNode):
    """<#if cond>...[<#elseif ...>...]*[<#else>...]</#if>"""
    cond: str
    then_body: List[TemplateNode] = field(default_factory=list)
    else_ifs: List[ElseIfBranch] = field(default_factory=list)
    else_body: List[TemplateNode] = field(default_factory=list)


@dataclass(frozen=True)
class ListNode(TemplateNode):
    """<#list seq as item>...</#list>"""
    seq_expr: str
    item_var: str
    body: List[TemplateNode] = field(default_factory=list)


@dataclass(frozen=True)
class AssignNode(TemplateNode):
    """<#assign name = expr> or <#local name = expr> (local=True)."""
    name: str
    expr: str
    local: bool = False


@dataclass(frozen=True)
class SettingNode(TemplateNode):
    """<#setting ...> / <#ftl ...>; passed through as a comment."""
    raw: str


@dataclass(frozen=True)
class FunctionNode(TemplateNode):
    """<#function name params...>...</#function>; parsed but never emitted."""
    name: str
    params: List[str] = field(default_factory=list)
    body: List[TemplateNode] = field(default_factory=list)


@dataclass(frozen=True)
class BareDirectiveNode(TemplateNode):
    """Body-less directive: <#break> or <#return ...>."""
    name: str
    args: str = ""


@dataclass(frozen=True)
class MacroCallNode(TemplateNode):
    """<@name args>; never emitted."""
    name: str
    args: str = ""


@dataclass(frozen=True)
class Document:
    """Parser output: ordered top-level nodes."""
    nodes: List[TemplateNode] = field(default_factory=list)


__all__ = [
    "TemplateNode",
    "TextNode",
    "InterpolationNode",
    "ElseIfBranch",
    "IfNode",
    "ListNode",
    "AssignNode",
    "SettingNode",
    "FunctionNode",
    "BareDirectiveNode",
    "MacroCallNode",
    "Document",
]
