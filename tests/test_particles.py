import numpy as np
import pytest

from simout.physics.hits import MISSING
from simout.physics.particles import GeneratedParticle, ParticleSummary


def test_summary_defaults():
    s = ParticleSummary("ctof")
    assert (s.stat, s.etot, s.t, s.nphe) == (0, 0.0, -1.0, 0)


def test_earliest_time_only_moves_earlier():
    s = ParticleSummary("ctof")
    assert s.update_time(5.0)
    assert s.t == 5.0
    assert not s.update_time(7.0)
    assert s.t == 5.0
    assert s.update_time(3.0)
    assert s.t == 3.0
    assert not s.update_time(3.0)


def test_negative_first_time_is_kept():
    s = ParticleSummary("ctof")
    assert s.update_time(-2.0)
    assert not s.update_time(5.0)
    assert s.t == -2.0
    s.add_hit(0.1, -1.5)
    assert s.t == -2.0


def test_rebuilt_summary_keeps_stored_time():
    s = ParticleSummary("ecal", stat=2, etot=1.0, t=-3.0)
    assert not s.update_time(4.0)
    assert s.t == -3.0
    assert s.update_time(-4.0)


def test_add_hit_accumulates():
    s = ParticleSummary("ecal")
    s.add_hit(1.0, 4.0, nphe=10)
    s.add_hit(0.5, 2.5, nphe=5)
    s.add_hit(0.25, 9.0)
    assert s.stat == 3
    assert s.etot == pytest.approx(1.75)
    assert s.t == 2.5
    assert s.nphe == 15


def test_summary_frozen_once_attached():
    p = GeneratedParticle(pid=2212, vertex=[0, 0, 0], momentum=[0, 0, 1])
    s = ParticleSummary("ctof")
    s.add_hit(1.0, 1.0)
    p.attach_summary(s)
    assert p.summary("ctof") is s
    assert p.summary("ecal") is None
    with pytest.raises(ValueError):
        s.add_hit(1.0, 0.5)
    with pytest.raises(ValueError):
        s.update_time(0.1)
    assert s.t == 1.0


def test_particle_vectors_and_variables():
    p = GeneratedParticle(pid=11, vertex=(1, 2, 3), momentum=(3, 0, 4), time=1.5, multiplicity=2)
    assert p.vertex.dtype == np.float64 and p.vertex.shape == (3,)
    assert p.get_variable_i("pid") == 11
    assert p.get_variable_i("multiplicity") == 2
    assert p.get_variable_i("px") == -99
    assert p.get_variable_d("p") == pytest.approx(5.0)
    assert p.get_variable_d("vz") == 3.0
    assert p.get_variable_d("time") == 1.5
    assert p.get_variable_d("pid") == 11.0
    assert p.get_variable_d("charge") == MISSING


def test_bad_vertex_shape_rejected():
    with pytest.raises(ValueError):
        GeneratedParticle(pid=11, vertex=[0, 0], momentum=[0, 0, 1])
