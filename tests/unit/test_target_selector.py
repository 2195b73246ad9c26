"""Unit tests for Target selector parsing and rendering."""

from __future__ import annotations

import pytest

from aiopsanalyzer.models.target import SelectorOperator, SelectorRequirement, Target, WorkloadBaseline


class TestFromSelector:
    def test_equality_terms_become_match_labels(self) -> None:
        target = Target.from_selector("product-a", "app=order-service,tier==backend")
        assert target.match_labels == (("app", "order-service"), ("tier", "backend"))
        assert target.match_expressions == ()
        assert target.selector() == "app=order-service,tier=backend"

    def test_set_expressions(self) -> None:
        target = Target.from_selector("ns", "app=web,env in (prod, staging),zone notin (a)")
        assert target.labels == {"app": "web"}
        assert target.match_expressions == (
            SelectorRequirement("env", SelectorOperator.IN, ("prod", "staging")),
            SelectorRequirement("zone", SelectorOperator.NOT_IN, ("a",)),
        )
        assert target.selector() == "app=web,env in (prod,staging),zone notin (a)"

    def test_inequality_maps_to_notin(self) -> None:
        target = Target.from_selector("ns", "app!=legacy")
        assert target.match_expressions == (SelectorRequirement("app", SelectorOperator.NOT_IN, ("legacy",)),)

    def test_existence_terms(self) -> None:
        target = Target.from_selector("ns", "canary,!deprecated")
        ops = [(r.key, r.operator) for r in target.match_expressions]
        assert ops == [("canary", SelectorOperator.EXISTS), ("deprecated", SelectorOperator.DOES_NOT_EXIST)]
        assert target.selector() == "canary,!deprecated"

    def test_missing_namespace_defaults(self) -> None:
        assert Target.from_selector("", "app=x").namespace == "default"

    def test_empty_selector_yields_empty_target(self) -> None:
        target = Target.from_selector("ns", " , ")
        assert target.is_empty

    def test_baseline_is_attached(self) -> None:
        baseline = WorkloadBaseline(replicas=3, cpu_limits="500m")
        assert Target.from_selector("ns", "app=x", baseline=baseline).baseline == baseline

    @pytest.mark.parametrize("selector", ["=value", "bad key=v", "app=x,in (a)"])
    def test_malformed_keys_raise(self, selector: str) -> None:
        with pytest.raises(ValueError):
            Target.from_selector("ns", selector)

    def test_prefixed_label_keys_are_accepted(self) -> None:
        target = Target.from_selector("ns", "app.kubernetes.io/name=api")
        assert target.labels == {"app.kubernetes.io/name": "api"}
