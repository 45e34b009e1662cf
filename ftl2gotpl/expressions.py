"""
FreeMarker expression rewriter.

Maps one free-text FreeMarker expression (a directive argument or an
interpolation body) to Go template pipeline syntax. Rules are tried in a
fixed order; a rule that matches at the top nesting level (outside quotes,
parentheses and brackets) recurses into its operands and returns:

 1. unary ``!x``                  -> not x
 2. default ``x!y``               -> default y x
 3. existence ``x??``             -> exists x
 4. ``a || b || ...``             -> or a b ...
 5. ``a && b && ...``             -> and a b ...
 6. comparisons                   -> eq/ne/ge/le/gt/lt a b
 7. ``( expr )``                  -> ( expr )
 8. builtin chains ``x?name(..)`` -> nested prefix calls
 9. ``formatPrice(x)``            -> formatPrice x
10. literals                      -> unchanged, single quotes re-quoted
11. arithmetic                    -> always rejected
12. identifier paths              -> .a.b / $local / index x key

Every helper a mapped expression relies on is recorded in ``helpers``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import AbstractSet, Iterator, List, Optional, Set, Tuple

from .quoting import QUOTE_CHARS, QuoteState

logger = logging.getLogger(__name__)

_NUMBER_LITERAL = re.compile(r"^-?\d+(\.\d+)?$")
_KEYWORD_LITERALS = frozenset({"true", "false", "nil", "null"})

_OPENERS = "(["
_CLOSERS = ")]"

# Operators whose presence at top level makes an operand "compound"
_OPERATOR_CHARS = "|&=<>"

# Tried in this order; two-character operators shadow their prefixes
_COMPARE_OPERATORS: Tuple[Tuple[str, str], ...] = (
    ("==", "eq"),
    ("!=", "ne"),
    (">=", "ge"),
    ("<=", "le"),
    (">", "gt"),
    ("<", "lt"),
    ("=", "eq"),
)

# FreeMarker spelling of comparisons usable inside tags, where '>' would end the tag
_COMPARE_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("gte", "ge"),
    ("lte", "le"),
    ("gt", "gt"),
    ("lt", "lt"),
)

_ARITHMETIC_CHARS = "+*/%"
_OPERAND_EDGE = ")]" + QUOTE_CHARS

_SINGLE_QUOTE_ESCAPES = {
    "\\": "\\",
    "'": "'",
    '"': '"',
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

SUPPORTED_BUILTINS = frozenset({
    "size", "has_content", "contains", "substring", "index_of", "trim",
    "index", "number", "number_to_datetime", "string", "no_esc",
})

SUPPORTED_FUNCTIONS = frozenset({"formatPrice"})


class ExpressionError(ValueError):
    """The expression uses syntax outside the supported subset."""
    pass


@dataclass(frozen=True)
class BuiltinCall:
    """One ``?name`` or ``?name(args)`` suffix of a builtin chain."""
    name: str
    args: str = ""


# -------------------- top-level scanning --------------------

def _scan(expr: str, start: int = 0) -> Iterator[Tuple[int, str, int]]:
    """
    Yield (index, char, depth) for every character outside string literals.

    Brackets report the depth they sit at: an opener and its matching closer
    share the same depth value.
    """
    depth = 0
    quotes = QuoteState()
    for i in range(start, len(expr)):
        ch = expr[i]
        if quotes.consume(ch):
            continue
        if ch in _OPENERS:
            yield i, ch, depth
            depth += 1
        elif ch in _CLOSERS:
            depth = max(depth - 1, 0)
            yield i, ch, depth
        else:
            yield i, ch, depth


def find_matching(expr: str, open_index: int) -> int:
    """Index of the bracket closing the one at open_index, or -1."""
    for i, ch, depth in _scan(expr, open_index):
        if i > open_index and depth == 0 and ch in _CLOSERS:
            return i
    return -1


def split_top_level(expr: str, sep: str) -> Optional[List[str]]:
    """
    Split on every top-level occurrence of sep.

    Returns:
        Trimmed parts, or None when sep does not occur at top level
    """
    parts: List[str] = []
    start = 0
    for i, _, depth in _scan(expr):
        if i < start or depth != 0:
            continue
        if expr.startswith(sep, i):
            parts.append(expr[start:i].strip())
            start = i + len(sep)
    if not parts:
        return None
    parts.append(expr[start:].strip())
    return parts


def split_top_level_word(expr: str, word: str) -> Optional[List[str]]:
    """Like split_top_level, for a keyword that must be surrounded by whitespace."""
    parts: List[str] = []
    start = 0
    end = len(expr)
    for i, _, depth in _scan(expr):
        if i < start or depth != 0 or not expr.startswith(word, i):
            continue
        after = i + len(word)
        if i > 0 and expr[i - 1].isspace() and after < end and expr[after].isspace():
            parts.append(expr[start:i].strip())
            start = after
    if not parts:
        return None
    parts.append(expr[start:].strip())
    return parts


def split_args(raw: str) -> List[str]:
    """Split a call argument list on top-level commas."""
    parts = split_top_level(raw, ",")
    if parts is None:
        return [raw.strip()]
    return parts


def strip_outer_parens(expr: str) -> Optional[str]:
    """Inner text if the whole expression is one parenthesized group, else None."""
    if not (expr.startswith("(") and expr.endswith(")")):
        return None
    if find_matching(expr, 0) != len(expr) - 1:
        return None
    return expr[1:-1].strip()


def has_top_level_operator(expr: str) -> bool:
    """True if a logical or comparison operator occurs at top level."""
    for _, ch, depth in _scan(expr):
        if depth == 0 and ch in _OPERATOR_CHARS:
            return True
    return any(split_top_level_word(expr, word) for word, _ in _COMPARE_KEYWORDS)


def has_top_level_arithmetic(expr: str) -> bool:
    """
    True if +, *, /, % or a binary minus occurs at top level.

    A '-' counts as binary only when operands sit on both sides of it
    (whitespace between operand and operator is allowed).
    """
    for i, ch, depth in _scan(expr):
        if depth != 0:
            continue
        if ch in _ARITHMETIC_CHARS:
            return True
        if ch == "-":
            before = expr[:i].rstrip()
            after = expr[i + 1:].lstrip()
            if before and after and _is_operand_end(before[-1]) and _is_operand_start(after[0]):
                return True
    return False


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _is_operand_end(ch: str) -> bool:
    return _is_word_char(ch) or ch in _OPERAND_EDGE


def _is_operand_start(ch: str) -> bool:
    return _is_word_char(ch) or ch == "(" or ch in QUOTE_CHARS


def _leading_word(expr: str) -> Tuple[str, str]:
    """Split off the leading run of identifier characters."""
    i = 0
    while i < len(expr) and _is_word_char(expr[i]):
        i += 1
    return expr[:i], expr[i:]


# -------------------- literals --------------------

def is_string_literal(expr: str) -> bool:
    """True if expr is exactly one quoted string literal."""
    if len(expr) < 2 or expr[0] not in QUOTE_CHARS:
        return False
    quotes = QuoteState()
    for i, ch in enumerate(expr):
        quotes.consume(ch)
        if not quotes.inside:
            return i == len(expr) - 1
    return False


def is_literal(expr: str) -> bool:
    """Boolean/null keyword, integer/decimal number or a quoted string."""
    expr = expr.strip()
    if expr in _KEYWORD_LITERALS:
        return True
    if _NUMBER_LITERAL.match(expr):
        return True
    return is_string_literal(expr)


def unescape_single_quoted(expr: str) -> str:
    """
    Decode a '...' FreeMarker literal.

    Raises:
        ExpressionError: On an escape sequence outside the supported table
    """
    if len(expr) < 2 or expr[0] != "'" or expr[-1] != "'":
        raise ExpressionError(f"not a single-quoted literal: {expr}")

    out: List[str] = []
    escaped = False
    for ch in expr[1:-1]:
        if escaped:
            if ch not in _SINGLE_QUOTE_ESCAPES:
                raise ExpressionError(f"unsupported escape sequence \\{ch} in literal {expr}")
            out.append(_SINGLE_QUOTE_ESCAPES[ch])
            escaped = False
        elif ch == "\\":
            escaped = True
        else:
            out.append(ch)
    if escaped:
        raise ExpressionError(f"unterminated escape in literal {expr}")
    return "".join(out)


def normalize_literal(expr: str) -> str:
    """Re-quote single-quoted strings with double quotes; pass anything else through."""
    if expr.startswith("'"):
        return json.dumps(unescape_single_quoted(expr), ensure_ascii=False)
    return expr


# -------------------- output helpers --------------------

def wrap(expr: str) -> str:
    """Parenthesize a mapped sub-expression that would otherwise split into several operands."""
    expr = expr.strip()
    if not any(ch.isspace() for ch in expr):
        return expr
    if is_string_literal(expr) or strip_outer_parens(expr) is not None:
        return expr
    return f"({expr})"


def join_wrapped(parts: List[str]) -> str:
    return " ".join(wrap(p) for p in parts)


def parse_builtin_chain(expr: str) -> Optional[Tuple[str, List[BuiltinCall]]]:
    """
    Split ``base?a?b(x)`` into its base and the ordered suffix calls.

    Returns:
        (base, calls) or None when expr is not a well-formed chain
    """
    pos = next((i for i, ch, depth in _scan(expr) if depth == 0 and ch == "?"), -1)
    if pos < 0:
        return None
    base = expr[:pos].strip()
    if not base:
        return None

    calls: List[BuiltinCall] = []
    i = pos
    while i < len(expr):
        if expr[i] != "?":
            if expr[i:].strip():
                return None
            break
        name, rest = _leading_word(expr[i + 1:])
        if not name:
            return None
        i += 1 + len(name)
        args = ""
        if rest.startswith("("):
            end = find_matching(expr, i)
            if end < 0:
                return None
            args = expr[i + 1:end].strip()
            i = end + 1
        calls.append(BuiltinCall(name=name.lower(), args=args))

    return base, calls


def parse_function_call(expr: str) -> Optional[Tuple[str, List[str]]]:
    """
    Recognize ``name(args)`` spanning the whole expression.

    Returns:
        (name, raw argument strings) or None
    """
    name, rest = _leading_word(expr)
    if not name or not rest.startswith("("):
        return None
    end = find_matching(rest, 0)
    if end != len(rest) - 1:
        return None
    raw_args = rest[1:end].strip()
    if not raw_args:
        return name, []
    return name, split_args(raw_args)


# -------------------- mapper --------------------

class ExpressionMapper:
    """
    Rewrites FreeMarker expressions against a snapshot of local names.

    One instance per emission call site; ``helpers`` accumulates across
    every expression mapped with this instance.
    """

    def __init__(self, locals_: AbstractSet[str] = frozenset()):
        self.locals: Set[str] = set(locals_)
        self.helpers: Set[str] = set()

    def helper_list(self) -> List[str]:
        """Sorted helper names required so far."""
        return sorted(self.helpers)

    def map_expr(self, expr: str) -> str:
        """
        Convert one FreeMarker expression.

        Raises:
            ExpressionError: When any part of the expression is unsupported
        """
        expr = expr.strip()
        if not expr:
            raise ExpressionError("empty expression")

        mapped = self._map_logic(expr)
        if mapped is None:
            mapped = self._map_term(expr)
        logger.debug("mapped %r -> %r", expr, mapped)
        return mapped

    # ---- rules 1-7 ----

    def _map_logic(self, expr: str) -> Optional[str]:
        if expr.startswith("!") and not expr.startswith("!="):
            operand = expr[1:].strip()
            if operand and not has_top_level_operator(operand):
                inner = self.map_expr(operand)
                self.helpers.add("not")
                return f"not {wrap(inner)}"

        default = self._split_default(expr)
        if default is not None:
            left, right = default
            mapped_left = self.map_expr(left)
            mapped_right = self.map_expr(right)
            self.helpers.add("default")
            return f"default {wrap(mapped_right)} {wrap(mapped_left)}"

        if expr.endswith("??"):
            base = expr[:-2].strip()
            if base and not has_top_level_operator(base):
                mapped = self.map_expr(base)
                self.helpers.add("exists")
                return f"exists {wrap(mapped)}"

        for sep, helper in (("||", "or"), ("&&", "and")):
            parts = split_top_level(expr, sep)
            if parts is not None and len(parts) > 1:
                mapped_parts = [self.map_expr(p) for p in parts]
                self.helpers.add(helper)
                return f"{helper} {join_wrapped(mapped_parts)}"

        comparison = self._split_comparison(expr)
        if comparison is not None:
            func, left, right = comparison
            return f"{func} {wrap(self.map_expr(left))} {wrap(self.map_expr(right))}"

        inner = strip_outer_parens(expr)
        if inner is not None:
            return f"({self.map_expr(inner)})"

        return None

    @staticmethod
    def _split_default(expr: str) -> Optional[Tuple[str, str]]:
        """
        Find a binary ``left!right`` at top level.

        Both sides must be plain operands: the left one ends in an operand
        character and neither contains a logical or comparison operator.
        """
        for i, ch, depth in _scan(expr):
            if depth != 0 or ch != "!" or expr.startswith("!=", i):
                continue
            left = expr[:i].strip()
            right = expr[i + 1:].strip()
            if not left or not right:
                continue
            if not (_is_operand_end(left[-1]) or left.endswith("?")):
                continue
            if has_top_level_operator(left) or has_top_level_operator(right):
                continue
            return left, right
        return None

    @staticmethod
    def _split_comparison(expr: str) -> Optional[Tuple[str, str, str]]:
        """Return (function, left, right) for the first operator splitting expr in two."""
        for op, func in _COMPARE_OPERATORS:
            parts = split_top_level(expr, op)
            if parts is None or len(parts) != 2:
                continue
            left, right = parts
            if op == "=" and any(c in part for part in parts for c in "<>"):
                continue
            return func, left, right

        for word, func in _COMPARE_KEYWORDS:
            parts = split_top_level_word(expr, word)
            if parts is not None and len(parts) == 2:
                return func, parts[0], parts[1]
        return None

    # ---- rules 8-12 ----

    def _map_term(self, expr: str) -> str:
        chain = parse_builtin_chain(expr)
        if chain is not None:
            base, calls = chain
            current = self.map_expr(base)
            for call in calls:
                current = self._apply_builtin(current, call)
            return current

        call = parse_function_call(expr)
        if call is not None:
            name, raw_args = call
            return self._map_function_call(name, raw_args)

        if is_literal(expr):
            return normalize_literal(expr)

        if has_top_level_arithmetic(expr):
            raise ExpressionError(f'unsupported arithmetic expression "{expr}"')

        return self.resolve_identifier(expr)

    def _apply_builtin(self, current: str, call: BuiltinCall) -> str:
        """Fold one builtin suffix onto the already mapped value."""
        name = call.name
        if name not in SUPPORTED_BUILTINS:
            raise ExpressionError(f"unsupported builtin ?{name}")
        args = [self.map_expr(a) for a in split_args(call.args)] if call.args else []

        if name == "size":
            return f"len {wrap(current)}"
        if name == "has_content":
            self.helpers.add("hasContent")
            return f"hasContent {wrap(current)}"
        if name == "contains":
            if len(args) != 1:
                raise ExpressionError("?contains expects one argument")
            self.helpers.add("contains")
            return f"contains {wrap(current)} {wrap(args[0])}"
        if name in ("substring", "index_of"):
            if not 1 <= len(args) <= 2:
                raise ExpressionError(f"?{name} expects one or two arguments")
            helper = "substring" if name == "substring" else "indexOf"
            self.helpers.add(helper)
            return f"{helper} {wrap(current)} {join_wrapped(args)}"
        if name == "trim":
            self.helpers.add("trim")
            return f"trim {wrap(current)}"
        if name == "index":
            return self._loop_index(current, args)
        if name == "number":
            self.helpers.add("toNumber")
            return f"toNumber {wrap(current)}"
        if name == "number_to_datetime":
            self.helpers.add("numberToDatetime")
            return f"numberToDatetime {wrap(current)}"
        if name == "string":
            self.helpers.add("toString")
            if not args:
                return f"toString {wrap(current)}"
            return f"toString {wrap(current)} {join_wrapped(args)}"
        # no_esc
        self.helpers.add("safeHTML")
        return f"safeHTML {wrap(current)}"

    def _loop_index(self, current: str, args: List[str]) -> str:
        """``item?index`` -> ``$item_index``, only for a bare loop item variable."""
        if args:
            raise ExpressionError("?index expects no arguments")
        name = current[1:]
        if not current.startswith("$") or not name or any(c in name for c in ".[( "):
            raise ExpressionError("?index is only supported on loop item variables")
        index_var = f"{name}_index"
        if index_var not in self.locals:
            raise ExpressionError("?index is only supported on loop item variables")
        return f"${index_var}"

    def _map_function_call(self, name: str, raw_args: List[str]) -> str:
        args = [self.map_expr(a) for a in raw_args]
        if name not in SUPPORTED_FUNCTIONS:
            raise ExpressionError(f'unsupported function call "{name}"')
        if len(args) != 1:
            raise ExpressionError("formatPrice expects one argument")
        self.helpers.add("formatPrice")
        return f"formatPrice {wrap(args[0])}"

    def resolve_identifier(self, expr: str) -> str:
        """
        Map an identifier path: ``a.b["k"][i].c``.

        The head becomes ``$a`` for a known local and ``.a`` otherwise;
        ``.name`` segments are appended, ``[key]`` segments become ``index``.
        """
        if expr == ".":
            return "."

        head, rest = _leading_word(expr)
        if not head:
            raise ExpressionError(f'unsupported identifier expression "{expr}"')

        current = f"${head}" if head in self.locals else f".{head}"
        i = 0
        while i < len(rest):
            ch = rest[i]
            if ch == ".":
                segment, _ = _leading_word(rest[i + 1:])
                if not segment:
                    raise ExpressionError(f'unsupported identifier expression "{expr}"')
                current = f"{wrap(current)}.{segment}"
                i += 1 + len(segment)
            elif ch == "[":
                end = find_matching(rest, i)
                key = rest[i + 1:end].strip() if end > 0 else ""
                if not key:
                    raise ExpressionError(f'unsupported identifier expression "{expr}"')
                current = f"index {wrap(current)} {wrap(self.map_expr(key))}"
                i = end + 1
            else:
                raise ExpressionError(f'unsupported identifier expression "{expr}"')
        return current


def map_expression(expr: str, locals_: AbstractSet[str] = frozenset()) -> Tuple[str, List[str]]:
    """
    One-shot helper: map expr and return it with its sorted helper names.

    Raises:
        ExpressionError: On unsupported syntax
    """
    mapper = ExpressionMapper(locals_)
    return mapper.map_expr(expr), mapper.helper_list()


__all__ = [
    "ExpressionError",
    "ExpressionMapper",
    "BuiltinCall",
    "map_expression",
    "split_top_level",
    "split_args",
    "find_matching",
    "strip_outer_parens",
    "has_top_level_arithmetic",
    "is_literal",
    "normalize_literal",
    "wrap",
    "SUPPORTED_BUILTINS",
    "SUPPORTED_FUNCTIONS",
]
