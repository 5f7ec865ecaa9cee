"""Tests for simple/composite query classification."""
import pytest

from dql_core.analysis import count_aggregation_prefixes, has_combining_operator, is_composite


@pytest.mark.parametrize(
    "query,expected",
    [
        ("avg:system.cpu.user{*}", False),
        ("default_zero(avg:system.cpu.user{*})", False),
        ("default_zero(default_zero(avg:system.cpu.user{*}))", False),
        ("avg:system.cpu.user{*} + avg:system.cpu.system{*}", True),
        ("(avg:metric1{*} + avg:metric2{*}) / sum:metric3{*}", True),
        (
            "(default_zero(default_zero(avg:deeply.nested.valid.metric1{fake:tag}))"
            "+default_zero(default_zero(avg:deeply.nested.valid.metric2{fake:tag})))"
            "/default_zero(avg:deeply.nested.valid.metric3{fake:tag})",
            True,
        ),
        ("avg:system.cpu.user{*}*100", True),
        ("avg:k8s.pods{env:prod-us,team:a/b}", False),
        ("", False),
        ("   ", False),
    ],
)
def test_is_composite(query, expected):
    assert is_composite(query) is expected


def test_operator_inside_tag_filter_is_ignored():
    assert has_combining_operator("avg:m{region:us-east-1,path:/api/*}") is False


def test_operator_at_query_edges_is_ignored():
    assert has_combining_operator("-avg:m{*}") is False
    assert has_combining_operator("avg:m{*}+") is False


def test_operator_inside_parens_counts():
    assert has_combining_operator("default_zero(avg:a{*}*2)") is True


def test_count_aggregation_prefixes():
    assert count_aggregation_prefixes("avg:a{*} + sum:b{*} / count:c{*}") == 3
    assert count_aggregation_prefixes("rate:a{*}") == 1
    assert count_aggregation_prefixes("system.cpu.user") == 0


def test_two_prefixes_without_operator_is_composite():
    assert is_composite("max:a{*} min:b{*}") is True


def test_known_false_positive_prefix_in_tag_value():
    # `checksum:` contains `sum:` and the prefix count is purely lexical.
    assert is_composite("avg:files.read{checksum:abc}") is True
