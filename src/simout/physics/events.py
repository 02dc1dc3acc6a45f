# src/simout/physics/events.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .banks import GBank
from .hits import HitRecord
from .particles import GeneratedParticle


@dataclass(slots=True)
class EventData:
    """
    Everything the simulation hands to the output layer for one event.

    header: event header fields (evn, run number, beam conditions, ...)
    header_bank: schema descriptor written alongside the header
    particles: generated particles, in generation order
    hits: detector name -> hits in that detector
    """
    header: Dict[str, float] = field(default_factory=dict)
    header_bank: GBank = field(default_factory=lambda: GBank(name="header"))
    particles: List[GeneratedParticle] = field(default_factory=list)
    hits: Dict[str, List[HitRecord]] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_hits(self) -> int:
        return sum(len(v) for v in self.hits.values())
