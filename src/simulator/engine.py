"""Simulation engine that replays visitor traffic through the assignment engine.

Each simulated visitor makes one or more visits:
  first visit (no cookie) -> assignment -> cookie written
  return visit (cookie)   -> assignment restored from cookie

A configurable share of return visits arrive without their cookie and get
a fresh assignment. All randomness, assignment included, is seeded for full
reproducibility.
"""

import random
from typing import Sequence

from pydantic import BaseModel, Field

from src.ab.config import AssignmentSettings
from src.ab.cookies import HeaderCookieStore, RequestContext
from src.ab.engine import AssignmentEngine
from src.ab.experiment import Experiment
from src.simulator.config import SimulationConfig


class VisitRecord(BaseModel):
    visitor_id: str
    visit_number: int
    cookie_sent: str | None = None
    # Set-Cookie value written on this visit, if any
    cookie_written: str | None = None
    experiment_id: str = ""
    variant_indexes: list[int] = Field(default_factory=list)
    classes: list[str] = Field(default_factory=list)


def simulate_visits(
    experiments: Sequence[Experiment],
    config: SimulationConfig | None = None,
    settings: AssignmentSettings | None = None,
) -> list[VisitRecord]:
    """Generate one VisitRecord per simulated visit, grouped by visitor."""
    if config is None:
        config = SimulationConfig()
    if settings is None:
        settings = AssignmentSettings()

    rng = random.Random(config.seed)
    engine = AssignmentEngine(settings, experiments, rng=rng)
    records: list[VisitRecord] = []

    for i in range(config.num_visitors):
        visitor_id = f"visitor_{i:05d}"
        records.extend(_simulate_visitor(visitor_id, engine, config, rng))

    return records


def _simulate_visitor(
    visitor_id: str,
    engine: AssignmentEngine,
    config: SimulationConfig,
    rng: random.Random,
) -> list[VisitRecord]:
    """Simulate a single visitor's visits, carrying the cookie between them."""
    records: list[VisitRecord] = []
    cookie_name = engine.settings.cookie_name
    cookie: str | None = None

    num_visits = rng.randint(config.min_visits, config.max_visits)
    for visit in range(num_visits):
        if visit > 0 and rng.random() < config.prob_cookie_lost:
            cookie = None

        store = HeaderCookieStore(f"{cookie_name}={cookie}" if cookie else None)
        assignment = engine.assign(RequestContext(cookies=store))

        written = store.read(cookie_name) if store.set_cookie_headers else None
        records.append(VisitRecord(
            visitor_id=visitor_id,
            visit_number=visit,
            cookie_sent=cookie,
            cookie_written=written,
            experiment_id=assignment.experiment_id,
            variant_indexes=assignment.variant_indexes,
            classes=assignment.classes,
        ))
        if written:
            cookie = written

    return records
