"""
Recursive-descent parser for FreeMarker token streams.

Builds a Document from the lexer's tokens. Block directives (if/elseif/else,
list, function) collect their bodies with parse_nodes() and a stopper set:
the body loop returns as soon as it meets one of the directive keys it was
told to stop on, handing the stopping token back to the block parser, which
then checks that it is the expected terminator.
"""

from __future__ import annotations

import logging
import re
from typing import FrozenSet, List, Optional, Tuple

from .diagnostics import (
    Diagnostic,
    PARSE_INVALID_ASSIGN,
    PARSE_INVALID_ELSEIF,
    PARSE_INVALID_FUNCTION,
    PARSE_INVALID_IF,
    PARSE_INVALID_LIST,
    PARSE_UNCLOSED_FUNCTION,
    PARSE_UNCLOSED_IF,
    PARSE_UNCLOSED_LIST,
    PARSE_UNEXPECTED_CLOSING,
    PARSE_UNEXPECTED_DIRECTIVE,
    PARSE_UNSUPPORTED_DIRECTIVE,
)
from .lexer import Token, TokenKind
from .nodes import (
    AssignNode,
    BareDirectiveNode,
    Document,
    ElseIfBranch,
    FunctionNode,
    IfNode,
    InterpolationNode,
    ListNode,
    MacroCallNode,
    SettingNode,
    TemplateNode,
    TextNode,
)

logger = logging.getLogger(__name__)

_LIST_ARGS = re.compile(r"^(.*?)\s+as\s+([A-Za-z_][A-Za-z0-9_]*)$", re.IGNORECASE | re.DOTALL)
_ASSIGN_ARGS = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.+)$", re.DOTALL)

Stoppers = FrozenSet[str]

_NO_STOPPERS: Stoppers = frozenset()
_IF_BRANCH_STOPPERS: Stoppers = frozenset({"dir:elseif", "dir:else", "close:if"})
_IF_ELSE_STOPPERS: Stoppers = frozenset({"close:if"})
_LIST_STOPPERS: Stoppers = frozenset({"close:list"})
_FUNCTION_STOPPERS: Stoppers = frozenset({"close:function"})


def directive_key(token: Token) -> str:
    """Normalized stopper key: 'dir:<name>' for open tags, 'close:<name>' for end tags."""
    if token.closing:
        return f"close:{token.name}"
    return f"dir:{token.name}"


def _is_open(token: Optional[Token], name: str) -> bool:
    return token is not None and not token.closing and token.name == name


def _is_close(token: Optional[Token], name: str) -> bool:
    return token is not None and token.closing and token.name == name


class TemplateParser:
    """
    Single forward pass over the token list; recursion follows directive nesting.

    There is no backtracking: every token is looked at exactly once.
    """

    def __init__(self, tokens: List[Token], file: str = "<template>"):
        self.tokens = tokens
        self.file = file
        self.position = 0

    def parse(self) -> Document:
        """
        Parse the whole token list.

        Raises:
            Diagnostic: On any structural error
        """
        nodes, stop = self.parse_nodes(_NO_STOPPERS)
        if stop is not None:
            raise Diagnostic.at(
                PARSE_UNEXPECTED_DIRECTIVE, self.file, stop.position,
                f"unexpected directive {stop.name!r}", stop.raw,
            )
        return Document(nodes=nodes)

    def parse_nodes(self, stoppers: Stoppers) -> Tuple[List[TemplateNode], Optional[Token]]:
        """
        Collect nodes until EOF or a directive whose key is in stoppers.

        Returns:
            (nodes, stopping token or None at EOF)
        """
        nodes: List[TemplateNode] = []

        while self.position < len(self.tokens):
            token = self.tokens[self.position]
            self.position += 1

            if token.kind == TokenKind.TEXT:
                nodes.append(TextNode(token.position, token.value))
            elif token.kind == TokenKind.INTERPOLATION:
                nodes.append(InterpolationNode(token.position, token.value.strip(), token.alt_style))
            elif token.kind == TokenKind.MACRO_CALL:
                nodes.append(MacroCallNode(token.position, token.name, token.args))
            elif token.kind == TokenKind.DIRECTIVE:
                if directive_key(token) in stoppers:
                    return nodes, token
                if token.closing:
                    raise Diagnostic.at(
                        PARSE_UNEXPECTED_CLOSING, self.file, token.position,
                        f"unexpected closing directive </#{token.name}>", token.raw,
                    )
                nodes.append(self._parse_directive(token))

        return nodes, None

    def _parse_directive(self, token: Token) -> TemplateNode:
        """Dispatch one opening directive to its sub-parser."""
        name = token.name
        if name == "if":
            return self._parse_if(token)
        if name == "list":
            return self._parse_list(token)
        if name in ("assign", "local"):
            return self._parse_assign(token, local=(name == "local"))
        if name == "setting":
            return SettingNode(token.position, token.args.strip())
        if name == "ftl":
            return SettingNode(token.position, f"ftl {token.args.strip()}")
        if name == "function":
            return self._parse_function(token)
        if name in ("return", "break"):
            return BareDirectiveNode(token.position, name, token.args.strip())

        raise Diagnostic.at(
            PARSE_UNSUPPORTED_DIRECTIVE, self.file, token.position,
            f"unsupported directive <{name}>", token.raw,
        )

    def _parse_if(self, token: Token) -> IfNode:
        """Parse <#if> with chained <#elseif> branches and an optional <#else>."""
        cond = token.args.strip()
        if not cond:
            raise Diagnostic.at(PARSE_INVALID_IF, self.file, token.position, "if directive requires a condition", token.raw)

        then_body, stop = self.parse_nodes(_IF_BRANCH_STOPPERS)
        if stop is None:
            raise self._unclosed(PARSE_UNCLOSED_IF, token, "if")

        else_ifs: List[ElseIfBranch] = []
        while _is_open(stop, "elseif"):
            branch_cond = stop.args.strip()
            if not branch_cond:
                raise Diagnostic.at(PARSE_INVALID_ELSEIF, self.file, stop.position, "elseif requires a condition", stop.raw)
            branch_token = stop
            body, stop = self.parse_nodes(_IF_BRANCH_STOPPERS)
            else_ifs.append(ElseIfBranch(branch_token.position, branch_cond, body))

        else_body: List[TemplateNode] = []
        if _is_open(stop, "else"):
            else_body, stop = self.parse_nodes(_IF_ELSE_STOPPERS)

        if not _is_close(stop, "if"):
            raise self._unclosed(PARSE_UNCLOSED_IF, token, "if")

        return IfNode(token.position, cond, then_body, else_ifs, else_body)

    def _parse_list(self, token: Token) -> ListNode:
        """Parse <#list seq as item>...</#list>."""
        match = _LIST_ARGS.match(token.args.strip())
        if not match or not match.group(1).strip():
            raise Diagnostic.at(
                PARSE_INVALID_LIST, self.file, token.position,
                "list directive must be '<#list expr as item>'", token.raw,
            )
        seq_expr = match.group(1).strip()
        item_var = match.group(2).strip()

        body, stop = self.parse_nodes(_LIST_STOPPERS)
        if not _is_close(stop, "list"):
            raise self._unclosed(PARSE_UNCLOSED_LIST, token, "list")

        return ListNode(token.position, seq_expr, item_var, body)

    def _parse_assign(self, token: Token, local: bool) -> AssignNode:
        """Parse <#assign name = expr> / <#local name = expr>."""
        match = _ASSIGN_ARGS.match(token.args.strip())
        if not match:
            raise Diagnostic.at(
                PARSE_INVALID_ASSIGN, self.file, token.position,
                "assign/local must be '<#assign x = expr>'", token.raw,
            )
        return AssignNode(token.position, match.group(1).strip(), match.group(2).strip(), local)

    def _parse_function(self, token: Token) -> FunctionNode:
        """
        Parse <#function name params...>...</#function>.

        Function definitions are structurally valid here; the emitter rejects them.
        """
        parts = token.args.split()
        if not parts:
            raise Diagnostic.at(
                PARSE_INVALID_FUNCTION, self.file, token.position,
                "function directive requires a name", token.raw,
            )

        body, stop = self.parse_nodes(_FUNCTION_STOPPERS)
        if not _is_close(stop, "function"):
            raise self._unclosed(PARSE_UNCLOSED_FUNCTION, token, "function")

        return FunctionNode(token.position, parts[0], parts[1:], body)

    def _unclosed(self, code: str, opener: Token, name: str) -> Diagnostic:
        """Unclosed-block diagnostic, positioned at the opening tag."""
        logger.debug("unclosed <#%s> opened at %s in %s", name, opener.position, self.file)
        return Diagnostic.at(code, self.file, opener.position, f"{name} directive not closed", opener.raw)


def parse_template(file: str, tokens: List[Token]) -> Document:
    """
    Convenience wrapper around TemplateParser.

    Raises:
        Diagnostic: On a structural error
    """
    return TemplateParser(tokens, file).parse()


__all__ = ["TemplateParser", "parse_template", "directive_key"]
