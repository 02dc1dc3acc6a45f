from __future__ import annotations

import typer
from typing import List, Optional

import numpy as np

from simout.config.load import load_config
from simout.config.schemas import CaptureCfg, Config, OutputCfg, RunCfg
from simout.io.h5_reader import iter_events, read_conditions
from simout.io.registry import default_registry
from simout.physics.banks import GBank
from simout.physics.events import EventData
from simout.pipelines.driver import open_sink, run_events
from simout.sim.synth import default_banks, synth_events

app = typer.Typer(help="Simulation event output tools")


@app.command("synth")
def synth(
    cfg_path: str = typer.Argument(..., help="Path to TOML config file"),
    n_events: int = typer.Option(10, "--events", "-n", help="Number of synthetic events"),
    detectors: List[str] = typer.Option(["ctof", "ecal"], "--detector", "-d", help="Detector names"),
    seed: Optional[int] = typer.Option(None, "--seed", help="RNG seed"),
):
    """Write synthetic events through the writer selected by [output].format."""
    cfg = load_config(cfg_path)
    sink = open_sink(cfg, default_registry(), cfg_path)
    events = synth_events(n_events, detectors=detectors, rng=np.random.default_rng(seed))
    diag = run_events([sink], events, default_banks(detectors))
    typer.echo(f"Wrote {diag.written[sink.destination]} events to {', '.join(map(str, sink.container.files))}")
    if diag.failures:
        raise typer.Exit(code=1)


@app.command("dump")
def dump(
    h5_path: str = typer.Argument(..., help="HDF5 event stream"),
    max_events: Optional[int] = typer.Option(None, "--max", help="Stop after this many events"),
):
    """Print conditions and a one-line summary per event."""
    for k, v in read_conditions(h5_path).items():
        if k != "config_text":
            typer.echo(f"{k}: {v}")
    for j, rec in enumerate(iter_events(h5_path)):
        if max_events is not None and j >= max_events:
            break
        hits = ", ".join(f"{d}={len(rec.hits(d))}" for d in rec.detectors)
        typer.echo(f"[{rec.index:06d}] particles={len(rec.particles)} hits: {hits or '-'}")


@app.command("to-txt")
def to_txt(
    h5_path: str = typer.Argument(..., help="HDF5 event stream"),
    out: str = typer.Option(..., "--out", "-o", help="Output text file"),
):
    """Re-emit an HDF5 event stream through the text writer."""
    everything = CaptureCfg(raw=True, steps=True, signal=True, quantized=True, multi_digitized=True)
    cfg = Config(run=RunCfg(diagnostics_level=0), output=OutputCfg(format="txt", path=out, default_capture=everything))
    sink = open_sink(cfg, default_registry())
    events = (
        EventData(
            header=rec.header,
            header_bank=GBank(
                name=rec.bank, idtag=rec.bank_idtag, raw_vars=rec.bank_raw_vars, dgt_vars=rec.bank_dgt_vars
            ),
            particles=rec.particles,
            hits={d: rec.hits(d) for d in rec.detectors},
            meta={"source_index": rec.index},
        )
        for rec in iter_events(h5_path)
    )
    metadata = {f"source.{k}": v for k, v in read_conditions(h5_path).items() if k != "config_text"}
    diag = run_events([sink], events, metadata=metadata)
    typer.echo(f"Wrote {diag.events} events to {out}")


if __name__ == "__main__":
    app()
