"""Cookie-sticky, weighted A/B experiment assignment.

A visitor is first matched against the experiment named in their cookie.
Without a usable cookie an experiment is drawn at random in proportion to
its weight, skipping experiments whose eligibility predicate rejects the
request. The visitor then gets `sections` distinct variants, drawn in
proportion to variant weight without replacement; variants restored from
the cookie are kept.

This guarantees:
- Stickiness: a valid cookie always maps back to the same assignment
- Termination: each experiment is tried at most once per request
- No sharing: weight vectors are per-call copies, catalog objects are never mutated
"""

import logging
import random
from typing import Any, Sequence

from src.ab.experiment import Experiment
from src.ab.schemas import Assignment
from src.ab.token import decode_token

logger = logging.getLogger(__name__)


def weighted_choice(weights: Sequence[float], rng: random.Random) -> int | None:
    """Pick an index with probability weight[i] / sum(weights).

    Zero-weight indexes are never picked. Returns None when no weight is
    positive.
    """
    if sum(weights) <= 0:
        return None
    return rng.choices(range(len(weights)), weights=weights, k=1)[0]


def _check_eligible(experiment: Experiment, context: Any) -> bool:
    if experiment.is_eligible is None:
        return True
    try:
        return bool(experiment.is_eligible(context))
    except Exception:
        logger.warning(
            "Eligibility check for experiment %s raised, treating as ineligible",
            experiment.experiment_id,
            exc_info=True,
        )
        return False


def select_experiment(
    experiments: Sequence[Experiment],
    candidate_id: str,
    context: Any,
    rng: random.Random,
) -> tuple[int | None, Experiment | None]:
    """Choose the experiment for this request.

    A candidate id restored from the cookie wins outright when it names an
    experiment in the catalog. Otherwise experiments are drawn by weight;
    an ineligible draw drops that experiment for the rest of the request.
    """
    if candidate_id:
        for index, experiment in enumerate(experiments):
            if experiment.experiment_id == candidate_id:
                return index, experiment

    weights = [exp.weight for exp in experiments]
    for _ in range(len(experiments)):
        index = weighted_choice(weights, rng)
        if index is None:
            break
        experiment = experiments[index]
        if _check_eligible(experiment, context):
            return index, experiment
        weights[index] = 0

    return None, None


def select_variants(
    experiment: Experiment,
    candidate_indexes: Sequence[int],
    rng: random.Random,
) -> list[int]:
    """Return exactly `experiment.sections` distinct variant indexes.

    Valid candidates are kept in order; missing slots are drawn by weight
    without replacement.
    """
    chosen: list[int] = []
    for index in candidate_indexes:
        if 0 <= index < len(experiment.variants) and index not in chosen:
            chosen.append(index)
    del chosen[experiment.sections:]

    weights = [variant.weight for variant in experiment.variants]
    for index in chosen:
        weights[index] = 0

    # Experiment validation guarantees enough positive weights for every section
    while len(chosen) < experiment.sections:
        index = weighted_choice(weights, rng)
        weights[index] = 0
        chosen.append(index)

    return chosen


def build_assignment(
    experiment_index: int | None,
    experiment: Experiment | None,
    variant_indexes: list[int],
) -> Assignment:
    if experiment is None:
        return Assignment()

    return Assignment(
        experiment_index=experiment_index,
        variant_indexes=variant_indexes,
        active_variants=[experiment.variants[i] for i in variant_indexes],
        classes=[f"exp-{experiment.name}-{i}" for i in variant_indexes],
        experiment_id=experiment.experiment_id,
        name=experiment.name,
        weight=experiment.weight,
        sections=experiment.sections,
        max_age=experiment.max_age,
        variants=list(experiment.variants),
        metadata=dict(experiment.metadata),
    )


def assign(
    experiments: Sequence[Experiment],
    cookie_value: str | None,
    context: Any,
    rng: random.Random,
) -> Assignment:
    """Resolve a full assignment from the catalog and the visitor's cookie."""
    candidate_id, candidate_indexes = decode_token(cookie_value)
    experiment_index, experiment = select_experiment(
        experiments, candidate_id, context, rng,
    )
    if experiment is None:
        return Assignment()

    # Indexes only carry over when they belong to the experiment they came with
    if experiment.experiment_id != candidate_id:
        candidate_indexes = []

    variant_indexes = select_variants(experiment, candidate_indexes, rng)
    return build_assignment(experiment_index, experiment, variant_indexes)
