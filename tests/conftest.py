from pathlib import Path

import pytest

from simout.config.schemas import CaptureCfg, Config, OutputCfg, RunCfg
from simout.physics.events import EventData
from simout.physics.hits import HitRecord
from simout.physics.particles import GeneratedParticle


def make_cfg(path: Path, fmt: str = "hdf5", *, diagnostics_level: int = 0, **capture) -> Config:
    return Config(
        run=RunCfg(diagnostics_level=diagnostics_level, run_number=11),
        output=OutputCfg(format=fmt, path=str(path), default_capture=CaptureCfg(**capture)),
    )


@pytest.fixture
def electron_event() -> EventData:
    """One electron along z, one ctof hit with digitized edep only."""
    p = GeneratedParticle(pid=11, vertex=[0, 0, 0], momentum=[0, 0, 1], time=0.0, multiplicity=1)
    return EventData(
        header={"evn": 1},
        particles=[p],
        hits={"ctof": [HitRecord(digitized={"edep": 1.5})]},
    )


@pytest.fixture
def cfg_factory():
    return make_cfg
