from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from simout.config.load import load_config
from simout.config.schemas import Config
from simout.io.container import OutputContainer
from simout.io.errors import OutputWriteError
from simout.io.registry import WriterRegistry, default_registry
from simout.io.writer_base import OutputWriter
from simout.physics.banks import BankMap
from simout.physics.events import EventData


@dataclass
class Sink:
    """One destination: its container and the writer resolved for it."""
    container: OutputContainer
    writer: OutputWriter
    written: int = 0
    failed: int = 0

    @property
    def destination(self) -> str:
        return str(self.container.base_file)


@dataclass
class WriteFailure:
    event_index: int
    destination: str
    detector: Optional[str]
    message: str


@dataclass
class RunDiagnostics:
    events: int = 0
    written: Dict[str, int] = field(default_factory=dict)
    failures: List[WriteFailure] = field(default_factory=list)

    def lost(self, destination: str) -> List[int]:
        return [f.event_index for f in self.failures if f.destination == destination]


def conditions_from_config(cfg: Config) -> Dict[str, str]:
    """Run-level key/values every conditions record starts from."""
    return {
        "software": cfg.run.software,
        "run_number": str(cfg.run.run_number),
        "output_format": cfg.output.format,
        "output_path": cfg.output.path,
    }


def open_sink(
    cfg: Config,
    registry: WriterRegistry,
    cfg_path: Optional[str | Path] = None,
) -> Sink:
    """
    Resolve the configured format and open its destination.

    Unknown formats and unopenable paths raise OutputConfigError; the run should
    stop there rather than fall back to another writer.
    """
    writer = registry.resolve(cfg.output.format)
    container = OutputContainer(cfg, cfg_path)
    writer.open(container)
    if cfg.run.diagnostics_level >= 1:
        print(f"[driver] Output format '{cfg.output.format}' -> {type(writer).__name__} at {container.out_file}")
    return Sink(container=container, writer=writer)


def write_one_event(
    container: OutputContainer,
    writer: OutputWriter,
    event: EventData,
    banks: Optional[BankMap] = None,
) -> None:
    """Drive the writer contract for one event, honoring each detector's capture flags."""
    writer.write_header(container, event.header, event.header_bank)
    writer.write_generated(container, event.particles, banks)
    for detector, hits in event.hits.items():
        cap = container.capture_for(detector)
        if cap.raw:
            writer.write_g4_raw_integrated(container, hits, detector, banks)
        if cap.steps:
            writer.write_g4_raw_all(container, hits, detector, banks)
        if cap.digitized:
            writer.write_g4_dgt_integrated(container, hits, detector, banks)
    writer.write_event(container)


def run_events(
    sinks: Sequence[Sink],
    events: Iterable[EventData],
    banks: Optional[BankMap] = None,
    metadata: Optional[Dict[str, str]] = None,
) -> RunDiagnostics:
    """
    Write every event to every sink, in order.

    A write failure loses that event for that sink only: it is reported with
    event index, detector and destination, the sink is reopened, and the loop
    carries on. If the sink cannot be reopened the run aborts. All sinks are
    closed on every exit path.
    """
    diag = RunDiagnostics()
    try:
        for sink in sinks:
            conditions = conditions_from_config(sink.container.cfg)
            conditions.update(metadata or {})
            sink.writer.record_sim_conditions(sink.container, conditions)

        for event in events:
            for sink in sinks:
                index = sink.container.event_index
                try:
                    write_one_event(sink.container, sink.writer, event, banks)
                except OutputWriteError as exc:
                    sink.writer.discard_event(sink.container)
                    sink.failed += 1
                    diag.failures.append(WriteFailure(
                        event_index=exc.event_index,
                        destination=exc.destination,
                        detector=exc.detector,
                        message=str(exc),
                    ))
                    if sink.container.diagnostics_level >= 1:
                        print(f"[driver] Lost event {index} for {sink.destination}: {exc}")
                    sink.container.reopen()
                else:
                    sink.written += 1
            diag.events += 1
    finally:
        for sink in sinks:
            sink.container.close()
            diag.written[sink.destination] = sink.written

    if any(s.container.diagnostics_level >= 1 for s in sinks):
        print(f"[driver] {diag.events} events processed, {len(diag.failures)} write failures")
    return diag


def run_from_config(
    cfg_path: str | Path,
    events: Iterable[EventData],
    banks: Optional[BankMap] = None,
    *,
    registry: Optional[WriterRegistry] = None,
    metadata: Optional[Dict[str, str]] = None,
) -> RunDiagnostics:
    """Load a TOML config, open its single destination and write all events."""
    cfg = load_config(cfg_path)
    sink = open_sink(cfg, registry or default_registry(), cfg_path)
    return run_events([sink], events, banks, metadata)
