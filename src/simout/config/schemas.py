from __future__ import annotations
from pydantic import BaseModel, Field, field_validator
from typing import Dict, Optional


class RunCfg(BaseModel):
    """
    Global run controls.

    TOML:

    [run]
    run_number = 11
    diagnostics_level = 1   # 0=off, 1=minimal, 2=verbose
    """

    run_number: int = 0
    software: str = "simout 0.1.0"

    # Diagnostics
    diagnostics_level: int = 1  # 0=off, 1=minimal, 2=verbose

    @field_validator("diagnostics_level")
    def _diag_range(cls, v: int) -> int:
        if v not in (0, 1, 2):
            raise ValueError("diagnostics_level must be 0, 1, or 2")
        return v


class CaptureCfg(BaseModel):
    """
    Which hit categories are written for a detector.

    Only digitized values are written unless a category is switched on.
    """

    raw: bool = False
    digitized: bool = True
    steps: bool = False
    signal: bool = False
    quantized: bool = False
    multi_digitized: bool = False


class OutputCfg(BaseModel):
    """
    Output destination.

    TOML:

    [output]
    format = "hdf5"            # any name known to the writer registry: "hdf5" | "h5" | "txt"
    path   = "out/run11.h5"
    events_per_file = 1000     # optional rollover; omit for a single file

    [output.default_capture]
    raw = true

    [output.detectors.ctof]
    signal = true
    """

    format: str = "hdf5"
    path: str
    events_per_file: Optional[int] = None

    default_capture: CaptureCfg = Field(default_factory=CaptureCfg)
    detectors: Dict[str, CaptureCfg] = Field(default_factory=dict)

    @field_validator("events_per_file")
    def _positive_rollover(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("events_per_file must be >= 1 when set")
        return v


class Config(BaseModel):
    """
    Top-level TOML configuration.
    """

    run: RunCfg = Field(default_factory=RunCfg)
    output: OutputCfg
