"""
simout.io.txt_writer

Plain-text output: one human-readable block per contract call. Lines are
written whole; there is no event-level atomicity.
"""
from __future__ import annotations
from typing import IO, Dict, Iterable, List, Sequence

from simout.io.container import OutputContainer
from simout.io.writer_base import OutputWriter
from simout.physics.banks import BankMap, GBank, bank_for
from simout.physics.hits import HitRecord
from simout.physics.particles import GeneratedParticle

GENERATED_COLUMNS = ["pid", "px", "py", "pz", "vx", "vy", "vz", "time", "multiplicity"]


def _fmt(v: float) -> str:
    return f"{v:g}"


def _pairs(names: Iterable[str], values: Iterable[float]) -> str:
    return " ".join(f"{n}={_fmt(v)}" for n, v in zip(names, values))


class TextWriter(OutputWriter):
    name = "txt"
    kind = "text"

    def _out(self, container: OutputContainer) -> IO[str]:
        return container.handle

    def _lines(self, container: OutputContainer, lines: List[str]) -> None:
        self._out(container).write("\n".join(lines) + "\n")

    def _record_sim_conditions(self, container: OutputContainer, metadata: Dict[str, str]) -> None:
        lines = ["##### Simulation Conditions #####"]
        lines += [f"  {k}: {v}" for k, v in metadata.items()]
        self._lines(container, lines)

    def _write_header(self, container: OutputContainer, header: Dict[str, float], bank: GBank) -> None:
        lines = [
            f"###### Event {container.event_index} ######",
            f"  header (bank {bank.name}, idtag {bank.idtag}):",
        ]
        lines += [f"    {k} = {_fmt(float(v))}" for k, v in header.items()]
        self._lines(container, lines)

    def _write_generated(
        self, container: OutputContainer, particles: Sequence[GeneratedParticle], banks: BankMap
    ) -> None:
        cols = GENERATED_COLUMNS
        if "generated" in banks and banks["generated"].dgt_vars:
            cols = banks["generated"].dgt_vars
        lines = [f"  generated particles: {len(particles)}"]
        for p in particles:
            lines.append("    " + _pairs(cols, (p.get_variable_d(c) for c in cols)))
            for s in p.summaries:
                lines.append(
                    f"      {s.dname}: stat={s.stat} etot={_fmt(s.etot)} t={_fmt(s.t)} nphe={s.nphe}"
                )
        self._lines(container, lines)

    def _write_g4_raw_integrated(
        self, container: OutputContainer, hits: Sequence[HitRecord], detector: str, banks: BankMap
    ) -> None:
        cols = bank_for(banks, detector).columns("raw", (h.raw for h in hits))
        lines = [f"  detector {detector} raw ({len(hits)} hits):"]
        for i, h in enumerate(hits):
            lines.append(f"    hit {i}: " + _pairs(cols, (h.raw_value(c) for c in cols)))
        self._lines(container, lines)

    def _write_g4_raw_all(
        self, container: OutputContainer, hits: Sequence[HitRecord], detector: str, banks: BankMap
    ) -> None:
        lines = [f"  detector {detector} raw steps:"]
        for i, h in enumerate(hits):
            if not h.has_steps:
                continue
            lines.append(f"    hit {i}:")
            for name, seq in h.raw_steps.items():
                lines.append(f"      {name}: " + " ".join(_fmt(x) for x in seq))
        self._lines(container, lines)

    def _write_g4_dgt_integrated(
        self, container: OutputContainer, hits: Sequence[HitRecord], detector: str, banks: BankMap
    ) -> None:
        cap = container.capture_for(detector)
        cols = bank_for(banks, detector).columns("dgt", (h.digitized for h in hits))
        lines = [f"  detector {detector} dgt ({len(hits)} hits):"]
        for i, h in enumerate(hits):
            lines.append(f"    hit {i}: " + _pairs(cols, (h.dgt_value(c) for c in cols)))
            if cap.signal and h.signal_vs_time:
                lines.append("      signal: " + " ".join(
                    f"{_fmt(t)}:{_fmt(v)}" for t, v in sorted(h.signal_vs_time.items())
                ))
            if cap.quantized and h.quantized:
                lines.append("      quantized: " + " ".join(
                    f"{b}:{a}" for b, a in sorted(h.quantized.items())
                ))
            if cap.multi_digitized:
                for name, seq in h.multi_digitized.items():
                    lines.append(f"      {name}: " + " ".join(str(x) for x in seq))
        self._lines(container, lines)

    def _write_event(self, container: OutputContainer) -> None:
        out = self._out(container)
        out.write(f"###### End Event {container.event_index} ######\n")
        out.flush()
