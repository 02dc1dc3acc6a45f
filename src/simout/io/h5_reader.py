"""Read back event streams written by simout.io.h5_writer."""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List

import h5py
import numpy as np

from simout.io.ragged import unpack_pair_maps, unpack_scalar_maps, unpack_sequence_maps
from simout.physics.hits import HitRecord
from simout.physics.particles import GeneratedParticle, ParticleSummary


@dataclass
class EventRecord:
    """One event as stored on disk; per-detector blocks are only present when written."""
    index: int
    header: Dict[str, float]
    bank: str
    bank_idtag: int
    bank_raw_vars: List[str] = field(default_factory=list)
    bank_dgt_vars: List[str] = field(default_factory=list)
    particles: List[GeneratedParticle] = field(default_factory=list)
    raw: Dict[str, List[Dict[str, float]]] = field(default_factory=dict)
    digitized: Dict[str, List[Dict[str, float]]] = field(default_factory=dict)
    raw_steps: Dict[str, Dict[int, Dict[str, List[float]]]] = field(default_factory=dict)
    signal: Dict[str, List[Dict[float, float]]] = field(default_factory=dict)
    quantized: Dict[str, List[Dict[int, int]]] = field(default_factory=dict)
    multi_digitized: Dict[str, List[Dict[str, List[int]]]] = field(default_factory=dict)

    @property
    def detectors(self) -> List[str]:
        names = set(self.raw) | set(self.digitized) | set(self.raw_steps)
        return sorted(names)

    def hits(self, detector: str) -> List[HitRecord]:
        """Rebuild HitRecords for a detector from whatever categories were written."""
        n = max(
            len(self.raw.get(detector, [])),
            len(self.digitized.get(detector, [])),
            max(self.raw_steps.get(detector, {}).keys(), default=-1) + 1,
        )
        steps = self.raw_steps.get(detector, {})
        out = []
        for i in range(n):
            out.append(HitRecord(
                raw=_at(self.raw.get(detector), i, {}),
                digitized=_at(self.digitized.get(detector), i, {}),
                raw_steps=steps.get(i, {}),
                signal_vs_time=_at(self.signal.get(detector), i, {}),
                quantized=_at(self.quantized.get(detector), i, {}),
                multi_digitized=_at(self.multi_digitized.get(detector), i, {}),
            ))
        return out


def _at(seq, i: int, default: Any):
    if seq is None or i >= len(seq):
        return default
    return seq[i]


def _read_particles(g: h5py.Group) -> List[GeneratedParticle]:
    pid = g["pid"][...]
    vertex = g["vertex"][...]
    momentum = g["momentum"][...]
    time = g["time"][...]
    mult = g["multiplicity"][...]
    ptr = g["summary_ptr"][...]
    dname = list(g["summary_dname"].asstr()[...])
    stat = g["stat"][...]
    etot = g["etot"][...]
    t = g["t"][...]
    nphe = g["nphe"][...]

    particles = []
    for i in range(len(pid)):
        summaries = [
            ParticleSummary(
                dname=dname[j], stat=int(stat[j]), etot=float(etot[j]), t=float(t[j]), nphe=int(nphe[j])
            )
            for j in range(int(ptr[i]), int(ptr[i + 1]))
        ]
        particles.append(GeneratedParticle(
            pid=int(pid[i]),
            vertex=np.array(vertex[i]),
            momentum=np.array(momentum[i]),
            time=float(time[i]),
            multiplicity=int(mult[i]),
            summaries=summaries,
        ))
    return particles


def _read_event(g: h5py.Group) -> EventRecord:
    rec = EventRecord(
        index=int(g.attrs["index"]),
        header={k: float(v) for k, v in g["header"].attrs.items()},
        bank=str(g.attrs["bank"]),
        bank_idtag=int(g.attrs["bank_idtag"]),
        particles=_read_particles(g["generated"]),
    )
    if "bank" in g:
        rec.bank_raw_vars = list(g["bank"]["raw_vars"].asstr()[...])
        rec.bank_dgt_vars = list(g["bank"]["dgt_vars"].asstr()[...])
    for dg in g["detectors"].values():
        name = str(dg.attrs["name"])
        if "raw" in dg:
            rec.raw[name] = unpack_scalar_maps(dg["raw"])
        if "dgt" in dg:
            rec.digitized[name] = unpack_scalar_maps(dg["dgt"])
        if "raw_steps" in dg:
            idx = dg["raw_steps"]["hit_index"][...]
            maps = unpack_sequence_maps(dg["raw_steps"])
            rec.raw_steps[name] = {int(i): m for i, m in zip(idx, maps)}
        if "signal" in dg:
            rec.signal[name] = unpack_pair_maps(dg["signal"])
        if "quantized" in dg:
            rec.quantized[name] = unpack_pair_maps(dg["quantized"])
        if "multi_dgt" in dg:
            rec.multi_digitized[name] = unpack_sequence_maps(dg["multi_dgt"])
    return rec


def read_conditions(path: str | Path) -> Dict[str, str]:
    with h5py.File(str(path), "r") as f:
        if "conditions" not in f:
            raise KeyError(f"/conditions not found in {path}")
        return {k: str(v) for k, v in f["conditions"].attrs.items()}


def iter_events(path: str | Path) -> Iterator[EventRecord]:
    """Yield events in the order they were written."""
    with h5py.File(str(path), "r") as f:
        if "events" not in f:
            return
        groups = sorted(f["events"].values(), key=lambda g: int(g.attrs["index"]))
        for g in groups:
            yield _read_event(g)


def count_events(path: str | Path) -> int:
    with h5py.File(str(path), "r") as f:
        return len(f["events"]) if "events" in f else 0
