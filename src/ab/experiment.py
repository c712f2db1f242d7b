"""Experiment definitions and metadata.

Each experiment has a unique ID, a selection weight, an ordered list of
variants and the number of variant slots (sections) a visitor receives.
Catalog records coming from JSON use the camelCase keys of the catalog
format (experimentID, maxAge, ...); anything unrecognised is carried along
in `metadata` / `Variant.data` for application code.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable

# Keys of a catalog record that map onto Experiment fields
_RECORD_KEYS = {"experimentID", "name", "weight", "maxAge", "sections", "variants"}


@dataclass(frozen=True)
class Variant:
    weight: float = 1.0
    # Arbitrary payload consumed by application code
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not math.isfinite(self.weight) or self.weight < 0:
            raise ValueError(f"Variant weight must be finite and non-negative, got {self.weight}")

    @classmethod
    def from_dict(cls, record: dict) -> "Variant":
        data = {k: v for k, v in record.items() if k != "weight"}
        return cls(weight=record.get("weight", 1.0), data=data)

    def to_dict(self) -> dict:
        return {**self.data, "weight": self.weight}


@dataclass(frozen=True)
class Experiment:
    experiment_id: str
    name: str
    variants: tuple[Variant, ...]
    weight: float = 1.0
    sections: int = 1
    # Cookie lifetime in seconds; None falls back to the configured default
    max_age: int | None = None
    # Called with the request context; None means every request is eligible
    is_eligible: Callable[[Any], bool] | None = field(default=None, compare=False)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, "variants", tuple(self.variants))
        if not self.experiment_id:
            raise ValueError("Experiment must have a non-empty experiment_id")
        if not self.variants:
            raise ValueError("Experiment must have at least 1 variant")
        if not math.isfinite(self.weight) or self.weight < 0:
            raise ValueError(f"Experiment weight must be finite and non-negative, got {self.weight}")
        if self.sections < 1:
            raise ValueError(f"Experiment sections must be at least 1, got {self.sections}")
        drawable = sum(1 for v in self.variants if v.weight > 0)
        if drawable < self.sections:
            raise ValueError(
                f"Experiment {self.experiment_id} needs {self.sections} variants "
                f"with positive weight, got {drawable}"
            )

    @classmethod
    def from_dict(cls, record: dict) -> "Experiment":
        """Build an experiment from a catalog record.

        Raises ValueError (or KeyError/TypeError/AttributeError for
        structurally broken records) when the record does not describe a
        valid experiment.
        """
        variants = tuple(Variant.from_dict(v) for v in record["variants"])
        return cls(
            experiment_id=str(record["experimentID"]),
            name=str(record.get("name", record["experimentID"])),
            variants=variants,
            weight=record.get("weight", 1.0),
            sections=int(record.get("sections", 1)),
            max_age=None if record.get("maxAge") is None else int(record["maxAge"]),
            metadata={k: v for k, v in record.items() if k not in _RECORD_KEYS},
        )

    def to_dict(self) -> dict:
        record = {
            **self.metadata,
            "experimentID": self.experiment_id,
            "name": self.name,
            "weight": self.weight,
            "sections": self.sections,
            "variants": [v.to_dict() for v in self.variants],
        }
        if self.max_age is not None:
            record["maxAge"] = self.max_age
        return record


# Example experiment used by the simulator and docs
HERO_COPY_EXPERIMENT = Experiment(
    experiment_id="hero-copy-v1",
    name="hero",
    variants=(
        Variant(weight=1.0, data={"headline": "Ship faster"}),
        Variant(weight=1.0, data={"headline": "Build with confidence"}),
    ),
)
