"""Tests for the kind-aware component matcher."""

from __future__ import annotations

from compscan.analyzers.matcher import ComponentMatcher, kinds_compatible
from compscan.models import CandidateComponent, CatalogEntry
from tests._fixtures.package_builder import DECL_CLASS, DECL_STRUCT, EXPR_CALL, FUNC_FREE

_FOO = CatalogEntry(name="foo(bar:)", kind=FUNC_FREE, module_name="Lib", doc_brief="Does foo.")


def test_function_entry_matches_call_expression() -> None:
    matcher = ComponentMatcher({"Lib": [_FOO]})
    assert matcher.match(CandidateComponent("foo(bar:)", EXPR_CALL, 0)) is _FOO
    assert matcher.match(CandidateComponent("foo", EXPR_CALL, 0)) is _FOO


def test_entry_matches_identical_kind() -> None:
    matcher = ComponentMatcher({"Lib": [_FOO]})
    assert matcher.match(CandidateComponent("foo(bar:)", FUNC_FREE, 0)) is _FOO


def test_matcher_rejects_different_base_name() -> None:
    matcher = ComponentMatcher({"Lib": [_FOO]})
    assert matcher.match(CandidateComponent("food", EXPR_CALL, 0)) is None
    assert matcher.match(CandidateComponent("", EXPR_CALL, 0)) is None


def test_non_callable_entry_needs_identical_kind() -> None:
    button = CatalogEntry(name="Button", kind=DECL_STRUCT, module_name="UI")
    matcher = ComponentMatcher({"UI": [button]})

    assert matcher.match(CandidateComponent("Button", EXPR_CALL, 0)) is None
    assert matcher.match(CandidateComponent("Button", DECL_CLASS, 0)) is None
    assert matcher.match(CandidateComponent("Button", DECL_STRUCT, 0)) is button


def test_first_match_wins_in_catalog_order() -> None:
    first = CatalogEntry(name="run()", kind=FUNC_FREE, module_name="Core")
    second = CatalogEntry(name="run(after:)", kind=FUNC_FREE, module_name="Lib")
    catalog = {
        "Core": [CatalogEntry(name="run", kind=DECL_CLASS, module_name="Core"), first],
        "Lib": [second],
    }
    matcher = ComponentMatcher(catalog)

    assert matcher.match(CandidateComponent("run(after:)", EXPR_CALL, 0)) is first


def test_match_all_drops_unmatched_candidates() -> None:
    matcher = ComponentMatcher({"Lib": [_FOO]})
    hit = CandidateComponent("foo", EXPR_CALL, 3)
    miss = CandidateComponent("bar", EXPR_CALL, 9)

    assert matcher.match_all([miss, hit, miss]) == [(hit, _FOO)]


def test_kinds_compatible() -> None:
    assert kinds_compatible("source.lang.swift.decl.function.method.static", EXPR_CALL)
    assert kinds_compatible(DECL_CLASS, DECL_CLASS)
    assert not kinds_compatible(DECL_CLASS, EXPR_CALL)
