"""
simout.io.container

The output destination for one run: configuration, the resolved format tag,
the target path, and the single open handle (text stream or HDF5 file).

A container is owned by exactly one thread of control. Workers that run in
parallel each open their own container; merging their files is a
post-processing step outside this package.
"""
from __future__ import annotations
from pathlib import Path
from typing import IO, Any, Dict, List, Literal, Optional, Set, Tuple, Union

import h5py

from simout.config.schemas import CaptureCfg, Config
from simout.io.errors import OutputConfigError

DestinationKind = Literal["text", "hdf5"]

# Contract stages
STAGE_NEW = "new"            # opened, no conditions record yet
STAGE_READY = "ready"        # between events
STAGE_IN_EVENT = "in_event"  # header written, event not yet finalized


class OutputContainer:
    """
    Run-scoped output destination.

    Use as a context manager so the handle is closed on every exit path:

        with OutputContainer(cfg) as c:
            c.open("hdf5")
            ...
    """

    def __init__(self, cfg: Config, cfg_path: Optional[str | Path] = None) -> None:
        self.cfg = cfg
        self.cfg_path = Path(cfg_path) if cfg_path is not None else None
        self.out_type: str = cfg.output.format
        self.base_file = Path(cfg.output.path)
        self.out_file: Path = self.base_file

        self.kind: Optional[DestinationKind] = None
        self.handle: Union[IO[str], h5py.File, None] = None

        self.stage: str = STAGE_NEW
        self.event_index: int = 0      # events finalized over the whole run
        self.events_in_file: int = 0   # events finalized in the current file
        self.file_index: int = 0
        self.files: List[Path] = []

        # writer-owned buffer for the event in progress
        self.scratch: Dict[str, Any] = {}
        # (call, detector) pairs already made for the event in progress
        self.calls: Set[Tuple[str, str]] = set()
        # conditions record, replayed at the top of every rollover file
        self.conditions: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # handle management
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        if self.handle is None:
            return False
        if self.kind == "hdf5":
            return bool(self.handle)  # h5py.File is falsy once closed
        return not self.handle.closed

    @property
    def diagnostics_level(self) -> int:
        return self.cfg.run.diagnostics_level

    def _open_handle(self, mode: str) -> None:
        try:
            self.out_file.parent.mkdir(parents=True, exist_ok=True)
            if self.kind == "hdf5":
                self.handle = h5py.File(self.out_file, mode)
            else:
                self.handle = open(self.out_file, mode, encoding="utf-8", buffering=1)
        except OSError as exc:
            raise OutputConfigError(
                f"Cannot open {self.kind} output '{self.out_file}' for format '{self.out_type}': {exc}"
            ) from exc

    def open(self, kind: DestinationKind) -> None:
        """Open a fresh destination of the given kind at the configured path."""
        if self.is_open:
            raise OutputConfigError(f"Output '{self.out_file}' is already open")
        self.kind = kind
        self._open_handle("w")
        self.files.append(self.out_file)
        if self.diagnostics_level >= 2:
            print(f"[output] Opened {kind} destination {self.out_file}")

    def close(self) -> None:
        if self.handle is not None and self.is_open:
            if self.kind == "text":
                self.handle.flush()
            self.handle.close()
            if self.diagnostics_level >= 2:
                print(f"[output] Closed {self.out_file}")
        self.handle = None

    def reopen(self) -> None:
        """Close and reopen the current file in append mode (after a write failure)."""
        if self.kind is None:
            raise OutputConfigError(f"Output '{self.out_file}' was never opened")
        try:
            self.close()
        except (OSError, ValueError):
            # the broken handle is discarded either way
            self.handle = None
        self._open_handle("a")
        if self.diagnostics_level >= 1:
            print(f"[output] Reopened {self.out_file}")

    def rollover_path(self, k: int) -> Path:
        if k == 0:
            return self.base_file
        return self.base_file.with_name(f"{self.base_file.stem}.{k}{self.base_file.suffix}")

    def needs_rollover(self) -> bool:
        n = self.cfg.output.events_per_file
        return n is not None and self.events_in_file >= n

    def roll(self) -> None:
        """Close the current file and open the next one in the rollover sequence."""
        self.close()
        self.file_index += 1
        self.out_file = self.rollover_path(self.file_index)
        self.events_in_file = 0
        self._open_handle("w")
        self.files.append(self.out_file)
        if self.diagnostics_level >= 1:
            print(f"[output] Rolled over to {self.out_file}")

    # ------------------------------------------------------------------
    # capture flags
    # ------------------------------------------------------------------

    def capture_for(self, detector: str) -> CaptureCfg:
        return self.cfg.output.detectors.get(detector, self.cfg.output.default_capture)

    def __enter__(self) -> "OutputContainer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"OutputContainer({self.out_type!r}, {str(self.out_file)!r}, {state})"
