"""
Tests for the FreeMarker -> Go template expression rewriter.
"""

import pytest

from ftl2gotpl.expressions import (
    SUPPORTED_BUILTINS,
    ExpressionError,
    ExpressionMapper,
    find_matching,
    has_top_level_arithmetic,
    is_literal,
    map_expression,
    normalize_literal,
    split_args,
    split_top_level,
    strip_outer_parens,
    wrap,
)


class TestScanningHelpers:

    def test_split_top_level_ignores_nested_and_quoted(self):
        assert split_top_level('a || (b || c) || "x||y"', "||") == ["a", "(b || c)", '"x||y"']

    def test_split_top_level_absent(self):
        assert split_top_level("a[b || c]", "||") is None

    def test_split_args(self):
        assert split_args('1, f(2, 3), "a,b"') == ["1", "f(2, 3)", '"a,b"']
        assert split_args("x") == ["x"]

    def test_find_matching(self):
        expr = 'f(a[")"], (b))'
        assert find_matching(expr, 1) == len(expr) - 1
        assert find_matching("(a", 0) == -1

    def test_strip_outer_parens(self):
        assert strip_outer_parens("( a && b )") == "a && b"
        assert strip_outer_parens("(a) && (b)") is None
        assert strip_outer_parens("a") is None

    @pytest.mark.parametrize("expr, expected", [
        ("a + b", True),
        ("a*2", True),
        ("a % 2", True),
        ("a - b", True),
        ("x.y-1", True),
        ("-1", False),
        ('"a-b"', False),
        ("f(a - b)", False),
        ("a", False),
    ])
    def test_has_top_level_arithmetic(self, expr, expected):
        assert has_top_level_arithmetic(expr) is expected

    def test_wrap(self):
        """Only multi-token, not already grouped expressions are parenthesized."""
        assert wrap(".a") == ".a"
        assert wrap("len .a") == "(len .a)"
        assert wrap("(len .a)") == "(len .a)"
        assert wrap('"a b"') == '"a b"'


class TestLiterals:

    @pytest.mark.parametrize("expr", ["true", "false", "null", "nil", "42", "-3.5", '"s"', "'s'"])
    def test_is_literal(self, expr):
        assert is_literal(expr)

    @pytest.mark.parametrize("expr", ["truthy", "1.", '"a" + "b"', "name"])
    def test_is_not_literal(self, expr):
        assert not is_literal(expr)

    def test_single_quoted_is_requoted(self):
        assert normalize_literal("'hello'") == '"hello"'
        assert normalize_literal("''") == '""'

    def test_single_quoted_escapes(self):
        assert normalize_literal(r"'l\'abc'") == '"l\'abc"'
        assert normalize_literal(r"'say \"hi\"'") == r'"say \"hi\""'
        assert normalize_literal(r"'a\nb'") == r'"a\nb"'

    def test_single_quoted_unsupported_escape(self):
        with pytest.raises(ExpressionError, match=r"unsupported escape sequence \\q"):
            normalize_literal(r"'a\qb'")

    def test_double_quoted_passthrough(self):
        assert normalize_literal('"x\\ty"') == '"x\\ty"'


class TestExpressionMapper:

    def setup_method(self):
        self.mapper = ExpressionMapper()

    @pytest.mark.parametrize("expr, expected", [
        ("name", ".name"),
        ("user.name", ".user.name"),
        ('user.metadata.attributes["userType"]', 'index .user.metadata.attributes "userType"'),
        ("a[0].b", "(index .a 0).b"),
        ("m[k]", "index .m .k"),
        (".", "."),
    ])
    def test_identifiers(self, expr, expected):
        assert self.mapper.map_expr(expr) == expected

    @pytest.mark.parametrize("expr, expected", [
        ('client_id == "mim"', 'eq .client_id "mim"'),
        ('client_id="mim"', 'eq .client_id "mim"'),
        ("a != b", "ne .a .b"),
        ("a >= 1", "ge .a 1"),
        ("a <= 1", "le .a 1"),
        ("a > 1", "gt .a 1"),
        ("a < 1", "lt .a 1"),
        ("a gt 1", "gt .a 1"),
        ("a gte 1", "ge .a 1"),
        ("a lt 1", "lt .a 1"),
        ("a lte 1", "le .a 1"),
    ])
    def test_comparisons(self, expr, expected):
        assert self.mapper.map_expr(expr) == expected

    @pytest.mark.parametrize("expr, expected", [
        ("a || b || c", "or .a .b .c"),
        ("a && b", "and .a .b"),
        ("a && b || c", "or (and .a .b) .c"),
        ("(a || b) && c", "and (or .a .b) .c"),
        ("!a", "not .a"),
        ("!a && b", "and (not .a) .b"),
        ("a && !b", "and .a (not .b)"),
        ("!(a || b)", "not (or .a .b)"),
        ('a == 1 && b != "x"', 'and (eq .a 1) (ne .b "x")'),
    ])
    def test_logic(self, expr, expected):
        assert self.mapper.map_expr(expr) == expected

    def test_logic_helpers_recorded(self):
        self.mapper.map_expr("!a && b || c")
        assert self.mapper.helper_list() == ["and", "not", "or"]

    @pytest.mark.parametrize("expr, expected, helpers", [
        ("ad.price!''", 'default "" .ad.price', ["default"]),
        ("name!'n/a'", 'default "n/a" .name', ["default"]),
        ("a!b", "default .b .a", ["default"]),
        ("user??", "exists .user", ["exists"]),
        ("a?? || b??", "or (exists .a) (exists .b)", ["exists", "or"]),
        ("!user??", "not (exists .user)", ["exists", "not"]),
    ])
    def test_default_and_exists(self, expr, expected, helpers):
        mapped, used = map_expression(expr)
        assert mapped == expected
        assert used == helpers

    @pytest.mark.parametrize("expr, expected, helpers", [
        ("users?size", "len .users", []),
        ("s?has_content", "hasContent .s", ["hasContent"]),
        ('s?contains("x")', 'contains .s "x"', ["contains"]),
        ("s?substring(1, 3)", "substring .s 1 3", ["substring"]),
        ("s?index_of('x')", 'indexOf .s "x"', ["indexOf"]),
        ("s?trim", "trim .s", ["trim"]),
        ("s?number", "toNumber .s", ["toNumber"]),
        ("ts?number_to_datetime", "numberToDatetime .ts", ["numberToDatetime"]),
        ("n?string", "toString .n", ["toString"]),
        ('b?string("yes", "no")', 'toString .b "yes" "no"', ["toString"]),
        ("html?no_esc", "safeHTML .html", ["safeHTML"]),
        ("s?trim?size", "len (trim .s)", ["trim"]),
        ("s?trim?has_content", "hasContent (trim .s)", ["hasContent", "trim"]),
    ])
    def test_builtins(self, expr, expected, helpers):
        mapped, used = map_expression(expr)
        assert mapped == expected
        assert used == helpers

    def test_format_price(self):
        mapped, used = map_expression("formatPrice(ad.price!'')")
        assert mapped == 'formatPrice (default "" .ad.price)'
        assert used == ["default", "formatPrice"]

    def test_locals_resolve_to_variables(self):
        mapper = ExpressionMapper({"user", "user_index"})
        assert mapper.map_expr("user.name") == "$user.name"
        assert mapper.map_expr("users[user_index].name") == "(index .users $user_index).name"
        assert mapper.map_expr("user?index") == "$user_index"

    def test_index_rejected_on_derived_values(self):
        """?index only works on the bare loop item, not on paths derived from it."""
        mapper = ExpressionMapper({"x", "x_index"})
        for expr in ("x.y?index", "x[0]?index"):
            with pytest.raises(ExpressionError, match=r"\?index is only supported"):
                mapper.map_expr(expr)

    def test_operators_inside_strings_are_opaque(self):
        assert self.mapper.map_expr('a == "x || y && z"') == 'eq .a "x || y && z"'
        assert self.mapper.map_expr("s?contains('a+b')") == 'contains .s "a+b"'

    def test_literal_passthrough(self):
        assert self.mapper.map_expr("42") == "42"
        assert self.mapper.map_expr("true") == "true"
        assert self.mapper.map_expr("'x'") == '"x"'


class TestExpressionErrors:

    def setup_method(self):
        self.mapper = ExpressionMapper()

    def test_empty(self):
        with pytest.raises(ExpressionError, match="empty expression"):
            self.mapper.map_expr("   ")

    @pytest.mark.parametrize("expr", ["a + 1", '"a" + "b"', "a * b", "price - discount"])
    def test_arithmetic_rejected(self, expr):
        with pytest.raises(ExpressionError, match="unsupported arithmetic expression"):
            self.mapper.map_expr(expr)

    def test_unknown_builtin(self):
        with pytest.raises(ExpressionError, match=r"unsupported builtin \?upper_case"):
            self.mapper.map_expr("name?upper_case")

    @pytest.mark.parametrize("name", sorted(SUPPORTED_BUILTINS))
    def test_supported_builtins_are_recognized(self, name):
        """Every advertised builtin maps on a loop item variable."""
        mapper = ExpressionMapper({"x", "x_index"})
        expr = f"x?{name}('a')" if name in ("contains", "substring", "index_of") else f"x?{name}"
        assert mapper.map_expr(expr)

    def test_builtin_name_checked_before_arguments(self):
        """An unknown builtin is reported even when its arguments would not map."""
        with pytest.raises(ExpressionError, match=r"unsupported builtin \?cap_first"):
            self.mapper.map_expr("name?cap_first(a + 1)")

    def test_unknown_function(self):
        with pytest.raises(ExpressionError, match='unsupported function call "doIt"'):
            self.mapper.map_expr("doIt(a)")

    def test_index_requires_loop_variable(self):
        with pytest.raises(ExpressionError, match=r"\?index is only supported on loop item variables"):
            self.mapper.map_expr("user?index")

    def test_contains_arity(self):
        with pytest.raises(ExpressionError, match="expects one argument"):
            self.mapper.map_expr("s?contains")

    @pytest.mark.parametrize("expr", ["a..b", "a[]", "@x", "a.b c"])
    def test_bad_identifier(self, expr):
        with pytest.raises(ExpressionError, match="unsupported identifier expression"):
            self.mapper.map_expr(expr)
