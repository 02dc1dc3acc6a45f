from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .hits import MISSING


@dataclass(slots=True)
class ParticleSummary:
    """
    Summary of all hits a primary particle (and its descendants) left in one detector.

    stat: number of hits
    etot: summed energy deposit
    t: earliest hit time, -1 until the first hit is recorded
    nphe: photoelectron count
    """
    dname: str
    stat: int = 0
    etot: float = 0.0
    t: float = -1.0
    nphe: int = 0
    _locked: bool = field(default=False, repr=False, compare=False)
    _has_t: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # summaries rebuilt from stored values already carry their earliest time
        self._has_t = self.stat > 0

    def _check_open(self) -> None:
        if self._locked:
            raise ValueError(f"ParticleSummary for '{self.dname}' is attached and can no longer change")

    def update_time(self, t: float) -> bool:
        """Record t if it is the first time seen or earlier than the current one."""
        self._check_open()
        t = float(t)
        if not self._has_t or t < self.t:
            self.t = t
            self._has_t = True
            return True
        return False

    def add_hit(self, edep: float, t: float, nphe: int = 0) -> None:
        self._check_open()
        self.stat += 1
        self.etot += float(edep)
        self.nphe += int(nphe)
        self.update_time(t)


@dataclass(slots=True)
class GeneratedParticle:
    """
    One generated particle written to the output.

    Primaries are always written; secondaries only when the simulation hands them over.
    """
    pid: int
    vertex: np.ndarray  # shape (3,), float
    momentum: np.ndarray  # shape (3,), float
    time: float = 0.0
    multiplicity: int = 1
    summaries: List[ParticleSummary] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.vertex = np.asarray(self.vertex, dtype=np.float64).reshape(3)
        self.momentum = np.asarray(self.momentum, dtype=np.float64).reshape(3)
        self.pid = int(self.pid)
        self.time = float(self.time)
        self.multiplicity = int(self.multiplicity)
        for s in self.summaries:
            s._locked = True

    def attach_summary(self, summary: ParticleSummary) -> None:
        summary._locked = True
        self.summaries.append(summary)

    def summary(self, dname: str) -> Optional[ParticleSummary]:
        for s in self.summaries:
            if s.dname == dname:
                return s
        return None

    def get_variable_i(self, name: str) -> int:
        if name == "pid":
            return self.pid
        if name == "multiplicity":
            return self.multiplicity
        return int(MISSING)

    def get_variable_d(self, name: str) -> float:
        px, py, pz = self.momentum
        vx, vy, vz = self.vertex
        table = {
            "px": px, "py": py, "pz": pz,
            "p": float(np.linalg.norm(self.momentum)),
            "vx": vx, "vy": vy, "vz": vz,
            "time": self.time,
        }
        if name in table:
            return float(table[name])
        if name in ("pid", "multiplicity"):
            return float(self.get_variable_i(name))
        return MISSING
