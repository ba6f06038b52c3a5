"""
Test suite for the IFExpr builtin primitives

Programs read right to left: the parser reverses every level, so the last
word written runs first and block elements are stored last-written first.
"""

from decimal import Decimal

import pytest

from ifexpr import (
    IFExprDimensionError, IFExprExternalError, IFExprLetError, IFExprStackUnderflow,
    IFExprTypeError, IFExprUndefinedSymbol, ValueCell, ffi,
)


def D(text):
    return Decimal(text)


def external_cause(exc_info):
    assert isinstance(exc_info.value, IFExprExternalError)
    return exc_info.value.exception


class TestArithmetic:
    """Test folding arithmetic over blocks"""

    def test_sum_of_block(self, runtime):
        assert runtime.execute("sum {1 2 3}") == (D("6"),)

    def test_block_then_word_runs_word_first(self, runtime):
        # Programs run right to left (see "Reading order" in DESIGN.md), so
        # the word runs before its block is pushed. Keep this behaviour.
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("{1 2 3} sum")
        assert isinstance(external_cause(exc_info), IFExprStackUnderflow)

    def test_product(self, runtime):
        assert runtime.execute("product {2 3 4}") == (D("24"),)

    def test_subtract_folds_in_stored_order(self, runtime):
        # {1 10} is stored as (10, 1)
        assert runtime.execute("subtract {1 10}") == (D("9"),)

    def test_divide(self, runtime):
        assert runtime.execute("divide {4 20}") == (D("5"),)

    def test_division_precision(self, make_runtime):
        runtime = make_runtime(division_precision=5)
        assert runtime.execute("divide {3 1}") == (D("0.33333"),)

    def test_division_by_zero(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("divide {0 1}")
        assert isinstance(external_cause(exc_info), ZeroDivisionError)

    @pytest.mark.parametrize("alias, name", [
        ("add", "sum"),
        ("mul", "product"),
        ("div", "divide"),
        ("sub", "subtract"),
    ])
    def test_aliases(self, make_runtime, alias, name):
        operand = " {{2 8} {4 16}}"
        assert make_runtime().execute(alias + operand) == \
            make_runtime().execute(name + operand)

    def test_exact_addition(self, runtime):
        (result,) = runtime.execute("sum {0.000000000000000000000000000001 1000000000000000000000}")
        assert result == D("1000000000000000000000.000000000000000000000000000001")

    def test_exact_multiplication(self, runtime):
        (result,) = runtime.execute("product {123456789012345678901234567890 98765432109876543210}")
        assert result == D(123456789012345678901234567890 * 98765432109876543210)

    def test_single_element(self, runtime):
        assert runtime.execute("sum 5") == (D("5"),)

    def test_elementwise_blocks(self, runtime):
        assert runtime.execute("sum {{1 2} {10 20}}") == ((D("22"), D("11")),)

    def test_nested_elementwise_blocks(self, runtime):
        result = runtime.execute("product {{{1 2} 3} {{4 5} 6}}")
        assert result == ((D("18"), (D("10"), D("4"))),)

    def test_dimension_mismatch(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("product {{1 2} {1 2 3}}")
        assert isinstance(external_cause(exc_info), IFExprDimensionError)

    def test_nested_dimension_mismatch(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("product {{{1 2}} {{1 2 3}}}")
        assert isinstance(external_cause(exc_info), IFExprDimensionError)

    def test_mixed_types(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("sum {1 {2}}")
        assert isinstance(external_cause(exc_info), IFExprTypeError)

    def test_sum_concatenates_symbols(self, runtime):
        assert runtime.execute("sum {foo bar}") == ("barfoo",)

    @pytest.mark.parametrize("name", ["product", "divide", "subtract"])
    def test_only_sum_accepts_symbols(self, runtime, name):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute(f"{name} {{foo bar}}")
        assert isinstance(external_cause(exc_info), IFExprTypeError)

    def test_operand_must_be_block(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("sum do {dbg}")
        assert isinstance(external_cause(exc_info), IFExprTypeError)

    def test_empty_block(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("sum {}")
        assert isinstance(external_cause(exc_info), IFExprTypeError)

    @pytest.mark.parametrize("x, y", [
        (D("7"), D("3.25")),
        (D("-1.5"), D("100")),
        ((D("1"), D("2"), D("3")), (D("0.1"), D("0.2"), D("0.3"))),
        (((D("1"), D("2")), D("3")), ((D("9"), D("8")), D("7"))),
    ])
    def test_add_then_subtract_is_identity(self, runtime, x, y):
        env = runtime.env
        env.call("add", (x, y))
        total = env.pop()
        env.call("subtract", (total, y))
        assert env.pop() == x

    def test_recursion_uses_named_operator(self, runtime):
        builtin = runtime.env.get_symbol("sum")
        calls = []

        def counting_sum(env):
            calls.append(env)
            builtin.fn(env)

        child = runtime.env.child()
        child.set("sum", ffi(counting_sum))
        child.call("sum", ((D("1"), D("2")), (D("3"), D("4"))))
        assert child.pop() == (D("4"), D("6"))
        assert len(calls) == 3


class TestDbg:
    """Test diagnostic output"""

    def test_prints_top_without_popping(self, runtime, out):
        assert runtime.execute("dbg 7") == ((D("7"),),)
        assert out.getvalue() == "[7]\n"

    def test_prints_block(self, runtime, out):
        runtime.execute("dbg {1 {2 ab}}")
        assert out.getvalue() == "[[ab, 2], 1]\n"

    def test_empty_stack(self, runtime, out):
        assert runtime.execute("dbg") == ()
        assert out.getvalue() == "<empty>\n"

    def test_logged_at_debug(self, runtime, ifexpr_logs):
        runtime.execute("dbg 7")
        assert any(r.getMessage() == "dbg: [7]" for r in ifexpr_logs.records)


class TestDo:
    """Test closure creation"""

    def test_pushes_generated_name(self, runtime):
        assert runtime.execute("do {dbg}") == ("__do0",)
        assert runtime.env.has_local("__do0")

    def test_names_are_unique(self, runtime):
        assert runtime.execute("do {dbg} do {dbg}") == ("__do0", "__do1")
        assert runtime.execute("do {dbg}") == ("__do0", "__do1", "__do2")

    def test_each_invocation_reruns_block(self, runtime, out):
        runtime.execute("do {dbg}")
        runtime.env.do_symbol("__do0")
        runtime.env.do_symbol("__do0")
        assert out.getvalue() == "__do0\n__do0\n"

    def test_no_memoization(self, runtime):
        ticks = []
        runtime.register("tick", ffi(lambda env: ticks.append(len(ticks))))
        (name,) = runtime.execute("do {tick}")
        for _ in range(3):
            runtime.env.do_symbol(name)
        assert ticks == [0, 1, 2]

    def test_block_runs_in_invoking_environment(self, runtime):
        (name,) = runtime.execute("do {sum {1 2}}")
        child = runtime.env.child()
        child.do_symbol(name)
        assert child.stack == (D("3"),)
        assert runtime.stack == (name,)

    def test_requires_block(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("do do {dbg}")
        assert isinstance(external_cause(exc_info), IFExprTypeError)


class TestLet:
    """Test scoped bindings"""

    def test_binds_and_transfers_result(self, runtime):
        assert runtime.execute("let {ab 5} do {ab}") == ((D("5"),),)

    def test_multiple_pairs(self, runtime):
        assert runtime.execute("let {ab 1} {cd 2} do {ab cd}") == \
            ((D("2"),), (D("1"),))

    def test_symbols_inside_blocks_stay_quoted(self, runtime):
        assert runtime.execute("let {ab 1} {cd 2} do {sum {ab cd}}") == ("cdab",)

    def test_shadowing_ends_with_body(self, runtime):
        runtime.set_var("xx", D("1"))
        assert runtime.execute("xx let {xx 5} do {xx}") == ((D("5"),), (D("1"),))
        assert runtime.get_var("xx") == D("1")
        assert runtime.env.get_symbol("xx") == ValueCell((D("1"),))

    def test_binding_not_visible_after_body(self, runtime):
        runtime.execute("let {ab 5} do {ab}")
        with pytest.raises(IFExprUndefinedSymbol):
            runtime.execute("ab")

    def test_root_builtin_visible_from_nested_scopes(self, runtime):
        assert runtime.execute("let {aa 1} do { let {bb 2} do { sum {4 3} } }") == (D("7"),)

    def test_outer_bindings_visible_from_inner_scope(self, runtime):
        result = runtime.execute("let {aa 10} do { let {bb 2} do { aa bb } }")
        assert result == ((D("2"),), (D("10"),))

    def test_transfer_preserves_order(self, runtime):
        assert runtime.execute("let do {1 2 3}") == \
            ((D("3"),), (D("2"),), (D("1"),))

    def test_pair_needs_two_elements(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("let {ab 1 2} do {dbg}")
        assert isinstance(external_cause(exc_info), IFExprLetError)

    def test_pair_needs_symbol_name(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("let {1 2} do {dbg}")
        assert isinstance(external_cause(exc_info), IFExprLetError)

    def test_empty_stack(self, runtime):
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("let")
        assert isinstance(external_cause(exc_info), IFExprStackUnderflow)

    def test_undefined_body(self, runtime):
        runtime.env.push("nosuchbody")
        with pytest.raises(IFExprExternalError) as exc_info:
            runtime.execute("let {ab 1}")
        assert isinstance(external_cause(exc_info), IFExprUndefinedSymbol)
        assert external_cause(exc_info).symbol == "nosuchbody"


class TestPrograms:
    """Integration tests"""

    def test_let_do_product_program(self, runtime, out):
        result = runtime.execute("dbg let { ac {1 2 3 4}} do { product dbg ac }")
        assert result == ((D("4"), D("3"), D("2"), D("1")),)
        assert out.getvalue() == "[[4, 3, 2, 1]]\n[4, 3, 2, 1]\n"

    def test_defined_programs(self, runtime):
        runtime.define("total", "let {vals {1 2 3 4}} do { product vals }")
        runtime.define("square", "product {7 7}")
        runtime.execute("total square")
        assert runtime.stack == (D("49"), (D("4"), D("3"), D("2"), D("1")))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
