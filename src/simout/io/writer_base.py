"""
simout.io.writer_base

The writer contract every output format implements.

Call order per container:

    record_sim_conditions            once per run
    for each event:
        write_header                 exactly once, first
        write_generated              once, may be empty
        write_g4_raw_integrated  \
        write_g4_raw_all          >  at most once per detector, any detector order
        write_g4_dgt_integrated  /
        write_event                  once, last

The public methods check the order and translate I/O failures into
OutputWriteError; subclasses only implement the `_`-prefixed hooks.
"""
from __future__ import annotations
from typing import Callable, Dict, Optional, Sequence

from simout.io.container import STAGE_IN_EVENT, STAGE_NEW, STAGE_READY, DestinationKind, OutputContainer
from simout.io.errors import OutputConfigError, OutputWriteError, WriterOrderError
from simout.physics.banks import BankMap, GBank
from simout.physics.hits import HitRecord
from simout.physics.particles import GeneratedParticle

# Errors raised by file primitives (h5py reports some failures as RuntimeError/ValueError)
IO_ERRORS = (OSError, RuntimeError, ValueError)


class OutputWriter:
    """
    Base writer.

    Writers are stateless between calls; everything they need for the event in
    progress lives on the container (`container.scratch`).
    """

    name: str = "base"
    kind: DestinationKind = "text"

    # --- helpers -----------------------------------------------------------

    def open(self, container: OutputContainer) -> None:
        container.open(self.kind)

    def _require(self, container: OutputContainer, stage: str, call: str) -> None:
        if container.stage != stage:
            raise WriterOrderError(
                f"{self.name}.{call} called in stage '{container.stage}' (expected '{stage}') "
                f"on {container.out_file}, event {container.event_index}"
            )

    def _once(self, container: OutputContainer, call: str, detector: str) -> None:
        key = (call, detector)
        if key in container.calls:
            target = f" for detector '{detector}'" if detector else ""
            raise WriterOrderError(
                f"{self.name}.{call} called twice{target} in event {container.event_index}"
            )
        container.calls.add(key)

    def _guarded(
        self,
        container: OutputContainer,
        fn: Callable[[], None],
        detector: Optional[str] = None,
    ) -> None:
        try:
            fn()
        except IO_ERRORS as exc:
            if isinstance(exc, (OutputWriteError, OutputConfigError, NotImplementedError)):
                raise
            raise OutputWriteError(
                f"{type(exc).__name__}: {exc}",
                destination=str(container.out_file),
                event_index=container.event_index,
                detector=detector,
            ) from exc

    # --- contract ----------------------------------------------------------

    def record_sim_conditions(self, container: OutputContainer, metadata: Dict[str, str]) -> None:
        if not container.is_open:
            raise OutputConfigError(
                f"Cannot record simulation conditions: destination '{container.out_file}' is not open"
            )
        self._require(container, STAGE_NEW, "record_sim_conditions")
        container.conditions = {str(k): str(v) for k, v in metadata.items()}
        self._guarded(container, lambda: self._record_sim_conditions(container, container.conditions))
        container.stage = STAGE_READY

    def write_header(self, container: OutputContainer, header: Dict[str, float], bank: GBank) -> None:
        self._require(container, STAGE_READY, "write_header")
        container.scratch = {}
        container.calls = set()
        container.stage = STAGE_IN_EVENT
        if container.needs_rollover():
            # each file opens with its own conditions record
            container.roll()
            self._guarded(container, lambda: self._record_sim_conditions(container, container.conditions))
        self._guarded(container, lambda: self._write_header(container, header, bank))

    def write_generated(
        self,
        container: OutputContainer,
        particles: Sequence[GeneratedParticle],
        banks: Optional[BankMap] = None,
    ) -> None:
        self._require(container, STAGE_IN_EVENT, "write_generated")
        self._once(container, "write_generated", "")
        self._guarded(container, lambda: self._write_generated(container, particles, banks or {}))

    def write_g4_raw_integrated(
        self,
        container: OutputContainer,
        hits: Sequence[HitRecord],
        detector: str,
        banks: Optional[BankMap] = None,
    ) -> None:
        self._require(container, STAGE_IN_EVENT, "write_g4_raw_integrated")
        self._once(container, "write_g4_raw_integrated", detector)
        if not hits:
            return
        self._guarded(
            container, lambda: self._write_g4_raw_integrated(container, hits, detector, banks or {}), detector
        )

    def write_g4_raw_all(
        self,
        container: OutputContainer,
        hits: Sequence[HitRecord],
        detector: str,
        banks: Optional[BankMap] = None,
    ) -> None:
        self._require(container, STAGE_IN_EVENT, "write_g4_raw_all")
        self._once(container, "write_g4_raw_all", detector)
        if not any(h.has_steps for h in hits):
            return
        self._guarded(
            container, lambda: self._write_g4_raw_all(container, hits, detector, banks or {}), detector
        )

    def write_g4_dgt_integrated(
        self,
        container: OutputContainer,
        hits: Sequence[HitRecord],
        detector: str,
        banks: Optional[BankMap] = None,
    ) -> None:
        self._require(container, STAGE_IN_EVENT, "write_g4_dgt_integrated")
        self._once(container, "write_g4_dgt_integrated", detector)
        if not hits:
            return
        self._guarded(
            container, lambda: self._write_g4_dgt_integrated(container, hits, detector, banks or {}), detector
        )

    def write_event(self, container: OutputContainer) -> None:
        self._require(container, STAGE_IN_EVENT, "write_event")
        self._guarded(container, lambda: self._write_event(container))
        container.scratch = {}
        container.calls = set()
        container.stage = STAGE_READY
        container.event_index += 1
        container.events_in_file += 1

    def discard_event(self, container: OutputContainer) -> None:
        """Drop the event in progress after a failure; the next call must be write_header."""
        self._discard_event(container)
        container.scratch = {}
        container.calls = set()
        if container.stage == STAGE_IN_EVENT:
            container.stage = STAGE_READY
            container.event_index += 1

    # --- hooks -------------------------------------------------------------

    def _record_sim_conditions(self, container: OutputContainer, metadata: Dict[str, str]) -> None:
        raise NotImplementedError

    def _write_header(self, container: OutputContainer, header: Dict[str, float], bank: GBank) -> None:
        raise NotImplementedError

    def _write_generated(
        self, container: OutputContainer, particles: Sequence[GeneratedParticle], banks: BankMap
    ) -> None:
        raise NotImplementedError

    def _write_g4_raw_integrated(
        self, container: OutputContainer, hits: Sequence[HitRecord], detector: str, banks: BankMap
    ) -> None:
        raise NotImplementedError

    def _write_g4_raw_all(
        self, container: OutputContainer, hits: Sequence[HitRecord], detector: str, banks: BankMap
    ) -> None:
        raise NotImplementedError

    def _write_g4_dgt_integrated(
        self, container: OutputContainer, hits: Sequence[HitRecord], detector: str, banks: BankMap
    ) -> None:
        raise NotImplementedError

    def _write_event(self, container: OutputContainer) -> None:
        raise NotImplementedError

    def _discard_event(self, container: OutputContainer) -> None:
        pass
