from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List

MISSING = -99.0


@dataclass(frozen=True, slots=True)
class HitRecord:
    """
    Output view of one detector hit.

    raw: geant4 truth integrated over the hit (disabled by default)
    digitized: detector-response values derived from raw (enabled by default)
    raw_steps: per-step geant4 truth, one sequence per variable
    signal_vs_time: treated voltage signal, time -> value
    quantized: quantized signal, time bucket -> amplitude
    multi_digitized: per-step digitized values across channels

    Every category is optional; an empty mapping means "not captured".
    """
    raw: Dict[str, float] = field(default_factory=dict)
    digitized: Dict[str, float] = field(default_factory=dict)
    raw_steps: Dict[str, List[float]] = field(default_factory=dict)
    signal_vs_time: Dict[float, float] = field(default_factory=dict)
    quantized: Dict[int, int] = field(default_factory=dict)
    multi_digitized: Dict[str, List[int]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # frozen: coerce through object.__setattr__
        object.__setattr__(self, "raw", {str(k): float(v) for k, v in self.raw.items()})
        object.__setattr__(self, "digitized", {str(k): float(v) for k, v in self.digitized.items()})
        object.__setattr__(
            self, "raw_steps", {str(k): [float(x) for x in v] for k, v in self.raw_steps.items()}
        )
        object.__setattr__(
            self, "signal_vs_time", {float(k): float(v) for k, v in self.signal_vs_time.items()}
        )
        object.__setattr__(self, "quantized", {int(k): int(v) for k, v in self.quantized.items()})
        object.__setattr__(
            self, "multi_digitized", {str(k): [int(x) for x in v] for k, v in self.multi_digitized.items()}
        )

    def raw_value(self, name: str) -> float:
        return self.raw.get(name, MISSING)

    def dgt_value(self, name: str) -> float:
        return self.digitized.get(name, MISSING)

    @property
    def has_steps(self) -> bool:
        return any(len(v) > 0 for v in self.raw_steps.values())
