import pytest

from simout.io.container import OutputContainer
from simout.io.errors import OutputConfigError, WriterOrderError
from simout.io.registry import default_registry
from simout.physics.banks import GBank
from simout.physics.hits import HitRecord

HDR = GBank(name="header")


@pytest.fixture(params=["hdf5", "txt"])
def opened(request, tmp_path, cfg_factory):
    fmt = request.param
    cfg = cfg_factory(tmp_path / f"out.{fmt}", fmt)
    writer = default_registry().resolve(fmt)
    with OutputContainer(cfg) as c:
        writer.open(c)
        yield c, writer


def test_conditions_require_open_destination(tmp_path, cfg_factory):
    cfg = cfg_factory(tmp_path / "never.h5")
    writer = default_registry().resolve("hdf5")
    c = OutputContainer(cfg)
    with pytest.raises(OutputConfigError, match="not open"):
        writer.record_sim_conditions(c, {"a": "b"})


def test_header_before_conditions_is_rejected(opened):
    c, w = opened
    with pytest.raises(WriterOrderError):
        w.write_header(c, {"evn": 0}, HDR)


def test_hits_before_header_are_rejected(opened):
    c, w = opened
    w.record_sim_conditions(c, {})
    with pytest.raises(WriterOrderError):
        w.write_g4_dgt_integrated(c, [HitRecord(digitized={"adc": 1})], "ctof")
    with pytest.raises(WriterOrderError):
        w.write_event(c)


def test_conditions_only_once(opened):
    c, w = opened
    w.record_sim_conditions(c, {})
    with pytest.raises(WriterOrderError):
        w.record_sim_conditions(c, {})


def test_second_header_without_write_event(opened):
    c, w = opened
    w.record_sim_conditions(c, {})
    w.write_header(c, {"evn": 0}, HDR)
    with pytest.raises(WriterOrderError):
        w.write_header(c, {"evn": 1}, HDR)


def test_same_detector_twice_in_one_event(opened):
    c, w = opened
    w.record_sim_conditions(c, {})
    w.write_header(c, {"evn": 0}, HDR)
    hits = [HitRecord(digitized={"adc": 1})]
    w.write_g4_dgt_integrated(c, hits, "ctof")
    w.write_g4_dgt_integrated(c, hits, "ecal")
    with pytest.raises(WriterOrderError):
        w.write_g4_dgt_integrated(c, hits, "ctof")


def test_full_sequence_and_zero_hits(opened):
    c, w = opened
    w.record_sim_conditions(c, {"run": "1"})
    for evn in range(2):
        w.write_header(c, {"evn": evn}, HDR)
        w.write_generated(c, [])
        w.write_g4_raw_integrated(c, [], "ctof")
        w.write_g4_raw_all(c, [HitRecord(digitized={"adc": 1})], "ctof")
        w.write_g4_dgt_integrated(c, [], "ctof")
        w.write_event(c)
    assert c.event_index == 2
    assert c.stage == "ready"


def test_discard_event_resets_stage(opened):
    c, w = opened
    w.record_sim_conditions(c, {})
    w.write_header(c, {"evn": 0}, HDR)
    w.discard_event(c)
    assert c.event_index == 1
    w.write_header(c, {"evn": 1}, HDR)
    w.write_event(c)
    assert c.event_index == 2
