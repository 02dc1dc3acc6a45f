"""
simout.io.h5_writer

Structured binary event stream on HDF5.

Layout (one group per finalized event, in write order):

/                       attrs: format_version, created_utc, software
/conditions             attrs: simulation conditions (+ config_text)
/events/event_000000    attrs: index, bank, bank_idtag
    header              attrs: header fields
    bank/               raw_vars, dgt_vars (schema descriptor of the header bank)
    generated/          pid, vertex (N,3), momentum (N,3), time, multiplicity,
                        summary_ptr (N+1), summary_dname, stat, etot, t, nphe
    detectors/det_NNN/  attrs: name (detector name, any characters)
        raw, dgt        scalar maps          (see simout.io.ragged)
        raw_steps       sequence map + hit_index
        signal          pair map (f8 -> f8)
        quantized       pair map (i8 -> i8)
        multi_dgt       sequence map (i4)

Every call before write_event only fills container.scratch. write_event
builds the record under /_pending and moves it into /events when complete,
so a failed event never leaves a partial group behind.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Sequence

import h5py
import numpy as np

from simout.config.load import snapshot_config_toml
from simout.io.container import OutputContainer
from simout.io.ragged import (
    pack_pair_maps,
    pack_scalar_maps,
    pack_sequence_maps,
    write_columns,
)
from simout.io.writer_base import OutputWriter
from simout.physics.banks import BankMap, GBank
from simout.physics.hits import HitRecord
from simout.physics.particles import GeneratedParticle

FORMAT_VERSION = "1.0"
PENDING = "_pending"


def event_group_name(index: int) -> str:
    return f"event_{index:06d}"


def _detector_key(i: int) -> str:
    # positional so any detector name is safe; the name itself lives in attrs["name"]
    return f"det_{i:03d}"


def _pack_generated(particles: Sequence[GeneratedParticle]) -> Dict[str, np.ndarray]:
    n = len(particles)
    vertex = np.zeros((n, 3), dtype=np.float64)
    momentum = np.zeros((n, 3), dtype=np.float64)
    pid = np.zeros(n, dtype=np.int32)
    time = np.zeros(n, dtype=np.float64)
    mult = np.zeros(n, dtype=np.int32)
    summary_ptr = np.zeros(n + 1, dtype=np.int64)

    dname: list[str] = []
    stat: list[int] = []
    etot: list[float] = []
    t: list[float] = []
    nphe: list[int] = []
    for i, p in enumerate(particles):
        vertex[i, :] = p.vertex
        momentum[i, :] = p.momentum
        pid[i] = p.pid
        time[i] = p.time
        mult[i] = p.multiplicity
        for s in p.summaries:
            dname.append(s.dname)
            stat.append(s.stat)
            etot.append(s.etot)
            t.append(s.t)
            nphe.append(s.nphe)
        summary_ptr[i + 1] = len(dname)

    return {
        "pid": pid,
        "vertex": vertex,
        "momentum": momentum,
        "time": time,
        "multiplicity": mult,
        "summary_ptr": summary_ptr,
        "summary_dname": np.array(dname, dtype=h5py.string_dtype()),
        "stat": np.asarray(stat, dtype=np.int32),
        "etot": np.asarray(etot, dtype=np.float64),
        "t": np.asarray(t, dtype=np.float64),
        "nphe": np.asarray(nphe, dtype=np.int32),
    }


class H5StreamWriter(OutputWriter):
    name = "hdf5"
    kind = "hdf5"

    def _detector_scratch(self, container: OutputContainer, detector: str) -> Dict[str, Any]:
        dets = container.scratch.setdefault("detectors", {})
        return dets.setdefault(detector, {})

    # --- run level ---------------------------------------------------------

    def _record_sim_conditions(self, container: OutputContainer, metadata: Dict[str, str]) -> None:
        f: h5py.File = container.handle
        f.attrs["format_version"] = FORMAT_VERSION
        f.attrs["created_utc"] = datetime.now(timezone.utc).isoformat()
        f.attrs["software"] = container.cfg.run.software
        f.attrs["run_number"] = container.cfg.run.run_number
        f.attrs["file_index"] = container.file_index

        cond = f.require_group("conditions")
        for k, v in metadata.items():
            cond.attrs[k] = v
        if container.cfg_path is not None:
            cond.attrs["config_text"] = snapshot_config_toml(container.cfg_path)
        f.require_group("events")
        f.flush()

    # --- event level -------------------------------------------------------

    def _write_header(self, container: OutputContainer, header: Dict[str, float], bank: GBank) -> None:
        container.scratch["header"] = {str(k): float(v) for k, v in header.items()}
        container.scratch["bank"] = bank

    def _write_generated(
        self, container: OutputContainer, particles: Sequence[GeneratedParticle], banks: BankMap
    ) -> None:
        container.scratch["generated"] = _pack_generated(particles)

    def _write_g4_raw_integrated(
        self, container: OutputContainer, hits: Sequence[HitRecord], detector: str, banks: BankMap
    ) -> None:
        self._detector_scratch(container, detector)["raw"] = pack_scalar_maps([h.raw for h in hits])

    def _write_g4_raw_all(
        self, container: OutputContainer, hits: Sequence[HitRecord], detector: str, banks: BankMap
    ) -> None:
        kept = [i for i, h in enumerate(hits) if h.has_steps]
        cols = pack_sequence_maps([hits[i].raw_steps for i in kept], np.float64)
        cols["hit_index"] = np.asarray(kept, dtype=np.int64)
        self._detector_scratch(container, detector)["raw_steps"] = cols

    def _write_g4_dgt_integrated(
        self, container: OutputContainer, hits: Sequence[HitRecord], detector: str, banks: BankMap
    ) -> None:
        cap = container.capture_for(detector)
        scratch = self._detector_scratch(container, detector)
        scratch["dgt"] = pack_scalar_maps([h.digitized for h in hits])
        if cap.signal:
            scratch["signal"] = pack_pair_maps([h.signal_vs_time for h in hits], np.float64, np.float64)
        if cap.quantized:
            scratch["quantized"] = pack_pair_maps([h.quantized for h in hits], np.int64, np.int64)
        if cap.multi_digitized:
            scratch["multi_dgt"] = pack_sequence_maps([h.multi_digitized for h in hits], np.int32)

    def _build_record(self, container: OutputContainer, g: h5py.Group) -> None:
        s = container.scratch
        bank: GBank = s["bank"]
        g.attrs["index"] = container.event_index
        g.attrs["bank"] = bank.name
        g.attrs["bank_idtag"] = bank.idtag
        write_columns(g.create_group("bank"), {
            "raw_vars": np.array(bank.raw_vars, dtype=h5py.string_dtype()),
            "dgt_vars": np.array(bank.dgt_vars, dtype=h5py.string_dtype()),
        })

        hdr = g.create_group("header")
        for k, v in s["header"].items():
            hdr.attrs[k] = v

        gen = s.get("generated")
        if gen is None:
            gen = _pack_generated([])
        write_columns(g.create_group("generated"), gen)

        dets = g.create_group("detectors")
        for i, (detector, blocks) in enumerate(s.get("detectors", {}).items()):
            dg = dets.create_group(_detector_key(i))
            dg.attrs["name"] = detector
            for block, cols in blocks.items():
                write_columns(dg.create_group(block), cols)

    def _drop_pending(self, f: h5py.File) -> None:
        if f and PENDING in f:
            del f[PENDING]

    def _write_event(self, container: OutputContainer) -> None:
        f: h5py.File = container.handle
        self._drop_pending(f)
        try:
            g = f.create_group(PENDING)
            self._build_record(container, g)
            events = f.require_group("events")
            name = event_group_name(container.event_index)
            if name in events:
                del events[name]
            f.move(PENDING, f"events/{name}")
            f.flush()
        except BaseException:
            self._drop_pending(f)
            raise
        if container.diagnostics_level >= 2:
            n_det = len(container.scratch.get("detectors", {}))
            print(f"[output] Wrote event {container.event_index} ({n_det} detectors) to {container.out_file}")

    def _discard_event(self, container: OutputContainer) -> None:
        if container.is_open:
            self._drop_pending(container.handle)
