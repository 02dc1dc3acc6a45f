from __future__ import annotations
import numpy as np
from typing import Iterator, Sequence

from ..physics.banks import BankMap, GBank
from ..physics.events import EventData
from ..physics.hits import HitRecord
from ..physics.particles import GeneratedParticle, ParticleSummary

C_CM_PER_NS = 29.9792458
M_E_MEV = 0.51099895

RAW_VARS = ["pid", "edep", "x", "y", "z", "t"]
DGT_VARS = ["adc", "tdc"]


def speed_from_p_MeV(p: float, m: float = M_E_MEV) -> float:
    E = np.hypot(p, m)
    return (p / E) * C_CM_PER_NS


def default_banks(detectors: Sequence[str]) -> BankMap:
    banks: BankMap = {
        name: GBank(name=name, idtag=100 * (i + 1), raw_vars=list(RAW_VARS), dgt_vars=list(DGT_VARS))
        for i, name in enumerate(detectors)
    }
    banks["generated"] = GBank(name="generated", idtag=10)
    return banks


def _pulse(t0: float, amp: float, n: int = 8, dt: float = 2.0) -> dict[float, float]:
    # simple exponential tail sampled every dt ns
    return {round(t0 + k * dt, 6): float(amp * np.exp(-k / 2.0)) for k in range(n)}


def synth_hit(
    rng: np.random.Generator,
    pid: int,
    r_cm: np.ndarray,
    t_ns: float,
    n_steps: int = 4,
) -> HitRecord:
    """One hit with every capture category populated."""
    step_edep = rng.exponential(0.5, size=n_steps)
    step_t = t_ns + np.cumsum(rng.uniform(0.01, 0.1, size=n_steps))
    edep = float(step_edep.sum())
    adc = int(edep * 1000)
    tdc = int(t_ns * 40)
    return HitRecord(
        raw={"pid": pid, "edep": edep, "x": r_cm[0], "y": r_cm[1], "z": r_cm[2], "t": t_ns},
        digitized={"adc": adc, "tdc": tdc},
        raw_steps={"edep": step_edep.tolist(), "t": step_t.tolist()},
        signal_vs_time=_pulse(t_ns, edep),
        quantized={int(t_ns // 4) + k: max(adc >> k, 0) for k in range(4)},
        multi_digitized={"adc": [int(x * 1000) for x in step_edep]},
    )


def synth_events(
    n_events: int,
    detectors: Sequence[str] = ("ctof", "ecal"),
    n_particles: int = 1,
    pid: int = 11,
    p_MeV: float = 1000.0,
    hit_prob: float = 0.8,
    rng: np.random.Generator | None = None,
) -> Iterator[EventData]:
    """
    Generate reproducible toy events:
      - particles start near the origin with random direction and fixed |p|
      - detector k sits at a radius of 50*(k+1) cm; a particle hits it with hit_prob
      - hit time is flight time to that radius
    Summaries are filled the way the simulation would, then attached.
    """
    rng = rng or np.random.default_rng()
    v = speed_from_p_MeV(p_MeV)

    for evn in range(n_events):
        particles: list[GeneratedParticle] = []
        hits: dict[str, list[HitRecord]] = {d: [] for d in detectors}

        for _ in range(n_particles):
            u = rng.normal(size=3)
            u /= np.linalg.norm(u)
            vertex = rng.normal(scale=0.1, size=3)
            part = GeneratedParticle(pid=pid, vertex=vertex, momentum=p_MeV * u, time=0.0, multiplicity=1)

            for k, det in enumerate(detectors):
                if rng.uniform() > hit_prob:
                    continue
                radius = 50.0 * (k + 1)
                r = vertex + radius * u
                t = radius / v
                h = synth_hit(rng, pid, r, t)
                hits[det].append(h)

                s = ParticleSummary(dname=det)
                s.add_hit(h.raw_value("edep"), t, nphe=int(rng.poisson(20)))
                part.attach_summary(s)

            particles.append(part)

        yield EventData(
            header={"evn": evn, "evn_type": -1, "beamPol": 0.0},
            header_bank=GBank(name="header", idtag=5),
            particles=particles,
            hits=hits,
        )
