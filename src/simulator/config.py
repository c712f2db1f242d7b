"""Simulation parameters for visitor traffic.

Visitors arrive without a cookie, get assigned, and some of them come back
carrying the cookie from their previous visit. Returning visits should be
sticky; first visits should follow the configured weights.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SimulationConfig:
    num_visitors: int = 2000
    # Random seed for reproducibility
    seed: int = 42

    # Visits per visitor (first visit included)
    min_visits: int = 1
    max_visits: int = 4
    # Chance a returning visitor lost their cookie (cleared, new device)
    prob_cookie_lost: float = 0.05
