"""Experiment catalog loading: local JSON files and the optional remote source.

A broken remote source never breaks a request. Whatever goes wrong (network
error, timeout, bad status, non-JSON or non-array payload) is logged and the
caller carries on with the local catalog.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable

import requests

from src.ab.config import AssignmentSettings
from src.ab.experiment import Experiment

logger = logging.getLogger(__name__)


def parse_catalog(records: Iterable[Any]) -> list[Experiment]:
    """Build experiments from catalog records, skipping invalid ones."""
    experiments: list[Experiment] = []
    seen: set[str] = set()
    for position, record in enumerate(records):
        try:
            experiment = Experiment.from_dict(record)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping invalid catalog record #%d: %s", position, e)
            continue
        if experiment.experiment_id in seen:
            logger.warning(
                "Skipping duplicate experiment id %s at record #%d",
                experiment.experiment_id, position,
            )
            continue
        seen.add(experiment.experiment_id)
        experiments.append(experiment)
    return experiments


def load_catalog_file(path: str | Path) -> list[Experiment]:
    """Read a local catalog: a JSON array of experiment records."""
    data = json.loads(Path(path).read_text())
    if not isinstance(data, list):
        raise ValueError(f"Catalog {path} must contain a JSON array")
    return parse_catalog(data)


def resolve_source(source: str, settings: AssignmentSettings, is_server: bool) -> str:
    # Relative URLs only make sense in a browser; on the server point them at our own API
    if is_server and source.startswith("/"):
        return settings.api_base_url + source
    return source


def fetch_experiments(
    source: str,
    settings: AssignmentSettings,
    is_server: bool = True,
    session: requests.Session | None = None,
) -> list[Experiment]:
    """GET the remote catalog; returns [] on any failure."""
    url = resolve_source(source, settings, is_server)
    # Client-side callers may hand us their own session to reuse
    getter = session.get if (session is not None and settings.use_fetch and not is_server) else requests.get

    try:
        response = getter(url, timeout=settings.fetch_timeout)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Failed to fetch experiments from remote source %s: %s", url, e)
        return []

    if not isinstance(data, list):
        logger.error("Invalid data from remote source %s: expected a JSON array", url)
        return []

    return parse_catalog(data)
