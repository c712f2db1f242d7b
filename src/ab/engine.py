"""Per-request assignment engine.

Ties the pieces together: loads the catalog (local plus optional remote),
reads the visitor's cookie through the request context, resolves the
assignment, writes the cookie back when the token changed, and reports the
assignment to client-side analytics.
"""

import logging
import random
from typing import Sequence

import requests

from src.ab.assignment import assign
from src.ab.catalog import fetch_experiments
from src.ab.config import AssignmentSettings
from src.ab.cookies import RequestContext
from src.ab.experiment import Experiment
from src.ab.schemas import Assignment

logger = logging.getLogger(__name__)

# Key the assignment token is reported under to the analytics collector
ANALYTICS_KEY = "exp"


class AssignmentEngine:
    def __init__(
        self,
        settings: AssignmentSettings,
        experiments: Sequence[Experiment] = (),
        rng: random.Random | None = None,
        session: requests.Session | None = None,
    ):
        self.settings = settings
        self.experiments = tuple(experiments)
        self.rng = rng or random.Random()
        self.session = session

    def load_experiments(self, is_server: bool = True) -> list[Experiment]:
        experiments = list(self.experiments)
        source = self.settings.external_experiments_src
        if source:
            experiments.extend(fetch_experiments(
                source, self.settings, is_server=is_server, session=self.session,
            ))
        return experiments

    def assign(
        self,
        context: RequestContext,
        experiments: Sequence[Experiment] | None = None,
    ) -> Assignment:
        if experiments is None:
            experiments = self.experiments

        cookie_name = self.settings.cookie_name
        cookie_value = context.cookies.read(cookie_name) or ""
        assignment = assign(experiments, cookie_value, context, self.rng)

        if assignment.is_active and assignment.token != cookie_value:
            max_age = assignment.max_age
            if max_age is None:
                max_age = self.settings.max_age
            context.cookies.write(
                cookie_name, assignment.token,
                max_age=max_age, domain=self.settings.cookie_domain,
            )
            logger.debug("Assigned %s (was %r)", assignment.token, cookie_value)

        self._report(context, assignment)
        return assignment

    def run(self, context: RequestContext) -> Assignment:
        """Load the catalog and assign; the per-request entry point."""
        experiments = self.load_experiments(is_server=context.is_server)
        return self.assign(context, experiments)

    def _report(self, context: RequestContext, assignment: Assignment) -> None:
        if context.is_server or context.analytics is None or not assignment.is_active:
            return
        context.analytics(ANALYTICS_KEY, assignment.token)
