"""Unit tests for predicate translation and the dict predicate grammar."""

from __future__ import annotations

import pytest

from brickorm.compile.base import ParamStyle
from brickorm.compile.context import CompilationContext, ParameterSet
from brickorm.compile.postgres import PostgresDialect
from brickorm.compile.predicate import PredicateTranslator
from brickorm.errors import UnsupportedExpressionError
from brickorm.schema.entity import metadata_for
from brickorm.schema.expressions import (
    Comparison,
    ComparisonOp,
    Constant,
    Logical,
    LogicalOp,
    Membership,
    Not,
    member,
    parse_predicate,
)
from tests.fixtures import Person, Widget


def _translate(dialect, predicate, entity_type=Person, qualifier=None):
    params = ParameterSet()
    ctx = CompilationContext(dialect, metadata_for(entity_type), qualifier)
    sql = PredicateTranslator(ctx, params).translate(predicate)
    return sql, params


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


def test_and_of_comparison_and_membership(sqlserver):
    pred = (member("Age") > 1) & member("LastName").in_([2, 3])
    sql, params = _translate(sqlserver, pred)
    assert sql == "([Age] > @p0) AND ([LastName] IN (@p1, @p2))"
    assert params.values() == [1, 2, 3]
    assert list(params.params) == ["p0", "p1", "p2"]


def test_or_nests_with_parentheses(postgres):
    pred = (member("Age") < 18) | ((member("Age") >= 65) & (member("LastName") != "Lee"))
    sql, params = _translate(postgres, pred)
    assert sql == '("Age" < @p0) OR (("Age" >= @p1) AND ("LastName" != @p2))'
    assert params.values() == [18, 65, "Lee"]


@pytest.mark.parametrize(
    ("op", "expected"),
    [
        (ComparisonOp.EQ, "="),
        (ComparisonOp.NE, "!="),
        (ComparisonOp.GT, ">"),
        (ComparisonOp.GTE, ">="),
        (ComparisonOp.LT, "<"),
        (ComparisonOp.LTE, "<="),
    ],
)
def test_each_comparison_operator(sqlserver, op, expected):
    sql, _ = _translate(sqlserver, Comparison(op, member("Age"), 5))
    assert sql == f"[Age] {expected} @p0"


@pytest.mark.parametrize(
    ("op", "expected"),
    [
        (ComparisonOp.LT, ">"),
        (ComparisonOp.GTE, "<="),
        (ComparisonOp.EQ, "="),
    ],
)
def test_member_on_the_right_mirrors_operator(sqlserver, op, expected):
    sql, params = _translate(sqlserver, Comparison(op, Constant(5), member("Age")))
    assert sql == f"[Age] {expected} @p0"
    assert params.values() == [5]


def test_reflected_python_comparison_keeps_member_left(sqlserver):
    sql, _ = _translate(sqlserver, 5 < member("Age"))
    assert sql == "[Age] > @p0"


def test_none_renders_null_tests(sqlserver):
    assert _translate(sqlserver, member("LastName") == None)[0] == "[LastName] IS NULL"  # noqa: E711
    sql, params = _translate(sqlserver, member("LastName") != None)  # noqa: E711
    assert sql == "[LastName] IS NOT NULL"
    assert len(params) == 0


def test_ordering_against_none_is_unsupported(sqlserver):
    with pytest.raises(UnsupportedExpressionError):
        _translate(sqlserver, member("Age") > None)


def test_not_in(sqlserver):
    sql, params = _translate(sqlserver, member("FirstName").not_in(["a", "b"]))
    assert sql == "[FirstName] NOT IN (@p0, @p1)"
    assert params.values() == ["a", "b"]


def test_empty_membership_is_constant(sqlserver):
    assert _translate(sqlserver, member("Age").in_([]))[0] == "1 = 0"
    sql, params = _translate(sqlserver, member("Age").not_in([]))
    assert sql == "1 = 1"
    assert len(params) == 0


def test_membership_values_are_snapshotted(sqlserver):
    values = [1, 2]
    pred = member("Age").in_(values)
    values.append(3)
    assert _translate(sqlserver, pred)[0] == "[Age] IN (@p0, @p1)"


def test_membership_requires_a_collection():
    with pytest.raises(UnsupportedExpressionError):
        member("FirstName").in_("abc")
    with pytest.raises(UnsupportedExpressionError):
        Membership(member("Age"), 5)


def test_column_override_is_used(sqlserver):
    sql, _ = _translate(sqlserver, member("DisplayName") == "gear", entity_type=Widget)
    assert sql == "[display_name] = @p0"


def test_qualifier_prefixes_columns(sqlserver):
    sql, _ = _translate(sqlserver, member("Age") > 1, qualifier="Person")
    assert sql == "[Person].[Age] > @p0"


def test_pyformat_placeholders():
    sql, _ = _translate(PostgresDialect(param_style=ParamStyle.PYFORMAT), member("Age") == 3)
    assert sql == '"Age" = %(p0)s'


# ---------------------------------------------------------------------------
# Unsupported shapes
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "predicate",
    [
        Not(Comparison(ComparisonOp.EQ, member("Age"), 1)),
        Comparison(ComparisonOp.EQ, member("Age"), member("LastName")),
        Comparison(ComparisonOp.EQ, Constant(1), Constant(1)),
        Constant(True),
        "Age > 1",
    ],
    ids=["not-comparison", "member-vs-member", "constant-vs-constant", "bare-constant", "raw-string"],
)
def test_unsupported_shapes_raise(sqlserver, predicate):
    with pytest.raises(UnsupportedExpressionError):
        _translate(sqlserver, predicate)


def test_not_mapped_member_is_rejected(sqlserver):
    with pytest.raises(UnsupportedExpressionError, match="FullName"):
        _translate(sqlserver, member("FullName") == "Ann Lee")


def test_split_comparison(sqlserver):
    translator = PredicateTranslator(
        CompilationContext(sqlserver, metadata_for(Widget)), ParameterSet()
    )
    assert translator.split_comparison(Comparison(ComparisonOp.GT, Constant(3), member("Price"))) == (
        "Price",
        ComparisonOp.LT,
        3,
    )
    assert translator.split_comparison(member("DisplayName") == "x") == ("display_name", ComparisonOp.EQ, "x")
    with pytest.raises(UnsupportedExpressionError):
        translator.split_comparison((member("Price") > 1) & (member("Price") < 5))


# ---------------------------------------------------------------------------
# Dict grammar
# ---------------------------------------------------------------------------


def test_dict_grammar_folds_and_left(sqlserver):
    raw = {
        "AND": [
            {"GTE": [{"col": "Age"}, {"value": 18}]},
            {"NOT_IN": [{"col": "FirstName"}, ["x"]]},
            {"EQ": [{"col": "Id"}, {"value": 3}]},
        ]
    }
    sql, params = _translate(sqlserver, raw)
    assert sql == "(([Age] >= @p0) AND ([FirstName] NOT IN (@p1))) AND ([Id] = @p2)"
    assert params.values() == [18, "x", 3]


def test_dict_grammar_builds_nodes():
    pred = parse_predicate({"OR": [{"LT": [{"value": 1}, {"col": "Age"}]}, {"IN": [{"col": "Age"}, [7]]}]})
    assert isinstance(pred, Logical)
    assert pred.op is LogicalOp.OR
    assert isinstance(pred.left, Comparison)
    assert isinstance(pred.right, Membership)
    assert pred.right.values == (7,)


@pytest.mark.parametrize(
    "raw",
    [
        {"LIKE": [{"col": "FirstName"}, {"value": "A%"}]},
        {"EQ": [{"col": "Age"}]},
        {"AND": [{"EQ": [{"col": "Age"}, {"value": 1}]}]},
        {"EQ": [{"column": "Age"}, {"value": 1}]},
        {"IN": [{"value": 1}, [1, 2]]},
        {"EQ": [{"col": "Age"}, {"value": 1}], "NE": [{"col": "Age"}, {"value": 2}]},
    ],
    ids=["unknown-op", "arity", "and-arity", "bad-operand", "in-on-constant", "two-keys"],
)
def test_dict_grammar_rejects_invalid_shapes(raw):
    with pytest.raises(UnsupportedExpressionError):
        parse_predicate(raw)


# ---------------------------------------------------------------------------
# ParameterSet
# ---------------------------------------------------------------------------


def test_parameter_names_stay_unique():
    params = ParameterSet()
    assert params.add_named("FirstName", "a") == "FirstName"
    assert params.add_named("FirstName", "b") == "FirstName_1"
    assert params.add_named("first name", "c") == "first_name"
    assert params.add_named("1st", "d") == "_1st"
    assert params.add_named("p0", "e") == "p0"
    assert params.add_value("f") == "p1"
    assert params.values() == ["a", "b", "c", "d", "e", "f"]
