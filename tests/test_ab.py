"""Tests for experiment definitions and the weighted assignment algorithm."""

import random

import pytest

from src.ab.assignment import (
    assign,
    build_assignment,
    select_experiment,
    select_variants,
    weighted_choice,
)
from src.ab.experiment import Experiment, Variant, HERO_COPY_EXPERIMENT


def _exp(exp_id, weight=1.0, variants=2, sections=1, **kwargs):
    return Experiment(
        experiment_id=exp_id,
        name=exp_id,
        variants=[Variant() for _ in range(variants)],
        weight=weight,
        sections=sections,
        **kwargs,
    )


class TestExperimentDefinition:
    def test_valid_experiment(self):
        exp = Experiment(
            experiment_id="test",
            name="Test",
            variants=[Variant(), Variant(weight=3)],
        )
        assert len(exp.variants) == 2
        assert exp.weight == 1.0
        assert exp.sections == 1
        assert isinstance(exp.variants, tuple)

    def test_needs_at_least_one_variant(self):
        with pytest.raises(ValueError, match="at least 1 variant"):
            Experiment(experiment_id="test", name="Test", variants=[])

    def test_needs_experiment_id(self):
        with pytest.raises(ValueError, match="experiment_id"):
            Experiment(experiment_id="", name="Test", variants=[Variant()])

    def test_non_finite_weight_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            _exp("test", weight=float("nan"))
        with pytest.raises(ValueError, match="finite"):
            Variant(weight=float("inf"))

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            _exp("test", weight=-1)
        with pytest.raises(ValueError, match="non-negative"):
            Variant(weight=-0.5)

    def test_sections_must_be_positive(self):
        with pytest.raises(ValueError, match="at least 1"):
            _exp("test", sections=0)

    def test_sections_need_enough_drawable_variants(self):
        with pytest.raises(ValueError, match="positive weight"):
            Experiment(
                experiment_id="test",
                name="Test",
                variants=[Variant(), Variant(weight=0)],
                sections=2,
            )

    def test_from_dict_maps_catalog_keys(self):
        exp = Experiment.from_dict({
            "experimentID": "abc123",
            "name": "hero",
            "maxAge": 120,
            "sections": 2,
            "weight": 0.5,
            "owner": "growth",
            "variants": [{"weight": 2, "headline": "A"}, {"headline": "B"}, {}],
        })
        assert exp.experiment_id == "abc123"
        assert exp.max_age == 120
        assert exp.sections == 2
        assert exp.weight == 0.5
        assert exp.metadata == {"owner": "growth"}
        assert exp.variants[0] == Variant(weight=2, data={"headline": "A"})
        assert exp.variants[1].weight == 1.0

    def test_to_dict_round_trips_through_from_dict(self):
        record = HERO_COPY_EXPERIMENT.to_dict()
        assert Experiment.from_dict(record) == HERO_COPY_EXPERIMENT

    def test_default_experiment_valid(self):
        assert HERO_COPY_EXPERIMENT.experiment_id == "hero-copy-v1"
        assert len(HERO_COPY_EXPERIMENT.variants) == 2


class TestWeightedChoice:
    def test_proportional_frequencies(self):
        rng = random.Random(42)
        weights = [1, 3, 6]
        counts = [0, 0, 0]
        for _ in range(10000):
            counts[weighted_choice(weights, rng)] += 1
        # 10%, 30%, 60% within a couple of points for 10k draws
        assert 800 <= counts[0] <= 1200
        assert 2700 <= counts[1] <= 3300
        assert 5700 <= counts[2] <= 6300

    def test_never_picks_zero_weight(self):
        rng = random.Random(1)
        picks = {weighted_choice([0, 2, 0, 1, 0], rng) for _ in range(2000)}
        assert picks == {1, 3}

    def test_all_zero_returns_none(self):
        assert weighted_choice([0, 0, 0], random.Random(0)) is None

    def test_empty_returns_none(self):
        assert weighted_choice([], random.Random(0)) is None


class TestSelectExperiment:
    def test_cookie_id_wins(self):
        catalog = [_exp("a"), _exp("b", weight=0)]
        # Stickiness bypasses both weighting and eligibility
        catalog.append(_exp("c", is_eligible=lambda ctx: False))
        assert select_experiment(catalog, "b", None, random.Random(0)) == (1, catalog[1])
        assert select_experiment(catalog, "c", None, random.Random(0)) == (2, catalog[2])

    def test_unknown_cookie_id_falls_back_to_random(self):
        catalog = [_exp("a"), _exp("b")]
        index, exp = select_experiment(catalog, "gone", None, random.Random(0))
        assert index in (0, 1)
        assert exp is catalog[index]

    def test_cookie_id_is_not_matched_by_first_character(self):
        catalog = [_exp("a", weight=0), _exp("abc")]
        index, _ = select_experiment(catalog, "abc", None, random.Random(0))
        assert index == 1

    def test_zero_weight_never_drawn(self):
        catalog = [_exp("a", weight=0), _exp("b")]
        rng = random.Random(3)
        for _ in range(200):
            assert select_experiment(catalog, "", None, rng)[0] == 1

    def test_empty_catalog(self):
        assert select_experiment([], "", None, random.Random(0)) == (None, None)

    def test_ineligible_experiment_skipped(self):
        catalog = [
            _exp("mobile", is_eligible=lambda ctx: ctx["mobile"]),
            _exp("desktop", is_eligible=lambda ctx: not ctx["mobile"]),
        ]
        rng = random.Random(5)
        for _ in range(100):
            _, exp = select_experiment(catalog, "", {"mobile": False}, rng)
            assert exp.experiment_id == "desktop"

    def test_all_ineligible_terminates_within_catalog_size(self):
        calls = []

        def never(ctx):
            calls.append(ctx)
            return False

        catalog = [_exp(f"e{i}", is_eligible=never) for i in range(5)]
        assert select_experiment(catalog, "", "ctx", random.Random(0)) == (None, None)
        assert len(calls) == 5

    def test_raising_predicate_treated_as_ineligible(self):
        def broken(ctx):
            raise RuntimeError("boom")

        catalog = [_exp("broken", is_eligible=broken), _exp("fine")]
        rng = random.Random(2)
        for _ in range(50):
            _, exp = select_experiment(catalog, "", None, rng)
            assert exp.experiment_id == "fine"

    def test_catalog_weights_not_mutated(self):
        catalog = [_exp("a", is_eligible=lambda ctx: False), _exp("b", weight=2)]
        select_experiment(catalog, "", None, random.Random(0))
        assert [e.weight for e in catalog] == [1.0, 2]


class TestSelectVariants:
    def test_valid_cookie_indexes_kept(self):
        exp = _exp("e", variants=4, sections=2)
        assert select_variants(exp, [3, 1], random.Random(0)) == [3, 1]

    def test_invalid_indexes_dropped_and_refilled(self):
        exp = _exp("e", variants=3, sections=2)
        chosen = select_variants(exp, [7, -1, 2], random.Random(0))
        assert chosen[0] == 2
        assert len(chosen) == 2
        assert len(set(chosen)) == 2
        assert all(0 <= i < 3 for i in chosen)

    def test_section_fill_is_exact_and_distinct(self):
        exp = _exp("e", variants=5, sections=3)
        rng = random.Random(11)
        for _ in range(200):
            chosen = select_variants(exp, [], rng)
            assert len(chosen) == 3
            assert len(set(chosen)) == 3
            assert all(0 <= i < 5 for i in chosen)

    def test_duplicates_and_extras_trimmed(self):
        exp = _exp("e", variants=3, sections=2)
        assert select_variants(exp, [1, 1, 0, 2], random.Random(0)) == [1, 0]

    def test_zero_weight_variant_never_drawn(self):
        exp = Experiment(
            experiment_id="e",
            name="e",
            variants=[Variant(weight=0), Variant(), Variant()],
            sections=2,
        )
        rng = random.Random(4)
        for _ in range(100):
            assert sorted(select_variants(exp, [], rng)) == [1, 2]

    def test_single_variant_always_zero(self):
        exp = _exp("e", variants=1)
        assert select_variants(exp, [], random.Random(0)) == [0]


class TestAssign:
    def test_single_experiment_fresh_visitor(self):
        catalog = [_exp("e1")]
        result = assign(catalog, None, None, random.Random(0))
        assert result.experiment_id == "e1"
        assert result.experiment_index == 0
        assert len(result.variant_indexes) == 1
        assert result.variant_indexes[0] in (0, 1)
        assert result.classes == [f"exp-e1-{result.variant_indexes[0]}"]
        assert result.token == f"e1.{result.variant_indexes[0]}"

    def test_cookie_restores_assignment(self):
        catalog = [_exp("e1", variants=3), _exp("e2", variants=3)]
        result = assign(catalog, "e2.2", None, random.Random(0))
        assert result.experiment_index == 1
        assert result.variant_indexes == [2]
        assert result.token == "e2.2"

    def test_malformed_cookie_reassigns(self):
        catalog = [_exp("e1")]
        result = assign(catalog, "garbage", None, random.Random(0))
        assert result.experiment_id == "e1"
        assert len(result.variant_indexes) == 1

    def test_stale_indexes_not_carried_to_other_experiment(self):
        catalog = [_exp("new", variants=4, sections=2)]
        rng = random.Random(8)
        seen_first = {assign(catalog, "old.3-2", None, rng).variant_indexes[0] for _ in range(100)}
        # Fresh draws, not the stale [3, 2] every time
        assert len(seen_first) > 1

    def test_no_experiment_has_empty_shape(self):
        result = assign([], "e1.0", None, random.Random(0))
        assert result.experiment_index is None
        assert not result.is_active
        assert result.variant_indexes == []
        assert result.active_variants == []
        assert result.classes == []
        assert result.variants == []
        assert result.token == ""

    def test_build_assignment_merges_experiment_fields(self):
        exp = Experiment(
            experiment_id="e",
            name="hero",
            variants=[Variant(data={"c": "red"}), Variant(data={"c": "blue"})],
            max_age=60,
            metadata={"owner": "growth"},
        )
        result = build_assignment(3, exp, [1])
        assert result.active_variants == [Variant(data={"c": "blue"})]
        assert result.classes == ["exp-hero-1"]
        assert result.name == "hero"
        assert result.max_age == 60
        assert result.metadata == {"owner": "growth"}
        assert len(result.variants) == 2
