from pathlib import Path

import pytest
from pydantic import ValidationError

from simout.config.load import load_config
from simout.config.schemas import Config
from simout.io.container import OutputContainer
from simout.io.errors import OutputConfigError
from simout.io.h5_reader import read_conditions
from simout.io.registry import default_registry
from simout.pipelines.driver import open_sink, run_from_config
from simout.sim.synth import synth_events

TOML = """
[run]
run_number = 42
diagnostics_level = 0

[output]
format = "{fmt}"
path = "{path}"

[output.default_capture]
raw = true

[output.detectors.ctof]
signal = true
digitized = false
"""


def _write_cfg(tmp_path: Path, fmt: str = "hdf5") -> Path:
    p = tmp_path / "sim.toml"
    p.write_text(TOML.format(fmt=fmt, path=(tmp_path / f"out.{fmt}").as_posix()))
    return p


def test_load_config_and_capture_flags(tmp_path):
    cfg = load_config(_write_cfg(tmp_path))
    assert cfg.run.run_number == 42
    assert cfg.output.format == "hdf5"
    c = OutputContainer(cfg)
    assert c.capture_for("ecal").raw is True
    assert c.capture_for("ecal").digitized is True
    assert c.capture_for("ctof").signal is True
    assert c.capture_for("ctof").digitized is False
    # per-detector tables replace the default, they do not merge with it
    assert c.capture_for("ctof").raw is False


def test_capture_defaults():
    cfg = Config(output={"path": "x.h5"})
    cap = cfg.output.default_capture
    assert (cap.raw, cap.digitized, cap.steps, cap.signal, cap.quantized, cap.multi_digitized) == \
           (False, True, False, False, False, False)
    assert cfg.output.format == "hdf5"
    assert cfg.output.events_per_file is None


@pytest.mark.parametrize("bad", [{"run": {"diagnostics_level": 3}}, {"output": {"events_per_file": 0}}])
def test_invalid_values_rejected(bad):
    data = {"output": {"path": "x.h5"}}
    for k, v in bad.items():
        data[k] = {**data.get(k, {}), **v}
    with pytest.raises(ValidationError):
        Config(**data)


def test_unknown_format_aborts_before_opening(tmp_path):
    cfg_path = _write_cfg(tmp_path, fmt="evio")
    with pytest.raises(OutputConfigError, match="evio"):
        run_from_config(cfg_path, [])
    assert not (tmp_path / "out.evio").exists()


def test_unopenable_path_is_config_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    cfg = Config(output={"format": "txt", "path": str(blocker / "out.txt")})
    with pytest.raises(OutputConfigError, match="Cannot open"):
        open_sink(cfg, default_registry())


def test_container_closes_on_error(tmp_path):
    cfg = Config(run={"diagnostics_level": 0}, output={"format": "txt", "path": str(tmp_path / "e.txt")})
    with pytest.raises(RuntimeError):
        with OutputContainer(cfg) as c:
            c.open("text")
            raise RuntimeError("boom")
    assert not c.is_open


def test_config_text_embedded(tmp_path):
    cfg_path = _write_cfg(tmp_path)
    diag = run_from_config(cfg_path, synth_events(2))
    assert diag.events == 2
    cond = read_conditions(tmp_path / "out.hdf5")
    assert "run_number = 42" in cond["config_text"]
    assert cond["run_number"] == "42"


@pytest.mark.parametrize("text, match", [
    ("[output\npath = 'x.h5'\n", "not valid TOML"),
    ("[run]\ndiagnostics_level = 7\n[output]\npath = 'x.h5'\n", "failed validation"),
])
def test_load_config_errors_name_the_file(tmp_path, text, match):
    p = tmp_path / "broken.toml"
    p.write_text(text)
    with pytest.raises(OutputConfigError, match=match) as err:
        load_config(p)
    assert "broken.toml" in str(err.value)


def test_missing_config_file(tmp_path):
    with pytest.raises(OutputConfigError, match="Cannot read config"):
        load_config(tmp_path / "nope.toml")
