import dataclasses

import pytest

from simout.physics.hits import MISSING, HitRecord


def test_missing_keys_return_sentinel():
    h = HitRecord(raw={"edep": 2.0}, digitized={"adc": 120})
    assert h.raw_value("edep") == 2.0
    assert h.dgt_value("adc") == 120.0
    # absent and case-mismatched keys never pick up another key's value
    assert h.raw_value("adc") == MISSING
    assert h.raw_value("Edep") == MISSING
    assert h.dgt_value("edep") == MISSING
    assert MISSING == -99


def test_empty_hit_is_all_sentinels():
    h = HitRecord()
    assert h.raw_value("anything") == -99
    assert h.dgt_value("anything") == -99
    assert not h.has_steps


def test_values_are_coerced():
    h = HitRecord(
        raw={"pid": 11},
        raw_steps={"edep": [1, 2]},
        signal_vs_time={1: 3},
        quantized={2.0: 7.0},
        multi_digitized={"adc": [1.0, 2.0]},
    )
    assert isinstance(h.raw["pid"], float)
    assert h.raw_steps == {"edep": [1.0, 2.0]}
    assert h.signal_vs_time == {1.0: 3.0}
    assert h.quantized == {2: 7} and isinstance(next(iter(h.quantized)), int)
    assert h.multi_digitized == {"adc": [1, 2]}
    assert h.has_steps


def test_has_steps_ignores_empty_sequences():
    assert not HitRecord(raw_steps={"edep": []}).has_steps


def test_hit_is_frozen():
    h = HitRecord(digitized={"adc": 1})
    with pytest.raises(dataclasses.FrozenInstanceError):
        h.digitized = {}
