"""Tests for Hohmann and tangential transfer planning."""
import math
import unittest

import numpy as np
from numpy.testing import assert_allclose
import pytest

from kepler_transfer import (
    ConvergenceError,
    InvalidOrbitError,
    Orbit,
    TransferConvergenceError,
    TransferInfeasibleError,
    hohmann_transfer,
    orbital_period,
    plan_transfer,
    state_at_time,
    tangential_transfer,
)
from kepler_transfer.planner import _arrival_geometry, _is_valid, _make_arrival


def assert_continuous(transfer, mu, rtol=1e-9):
    """The body's position does not jump at any maneuver."""
    for m in transfer.maneuvers:
        before = np.asarray(state_at_time(m.start_orbit, mu, m.execution_time).r)
        after = np.asarray(state_at_time(m.target_orbit, mu, m.execution_time).r)
        assert_allclose(after, before, atol=rtol * np.linalg.norm(before))


def assert_tangent(maneuver, mu, tol=1e-7):
    """Velocities before and after the maneuver point the same way."""
    v1 = np.asarray(state_at_time(maneuver.start_orbit, mu, maneuver.execution_time).v)
    v2 = np.asarray(state_at_time(maneuver.target_orbit, mu, maneuver.execution_time).v)
    cross = v1[0] * v2[1] - v1[1] * v2[0]
    assert abs(cross) / (np.linalg.norm(v1) * np.linalg.norm(v2)) < tol
    assert np.dot(v1, v2) > 0.0


class TestHohmannTransfer(unittest.TestCase):

    mu = 1.0e11

    def test_raise_two_to_four(self):
        transfer = plan_transfer(Orbit(2.0), Orbit(4.0), self.mu, 0.0)
        self.assertEqual(len(transfer), 2)

        first, second = transfer.maneuvers
        self.assertEqual(first.execution_time, 0.0)
        self.assertAlmostEqual(first.target_orbit.semi_major_axis, 3.0, places=12)
        self.assertAlmostEqual(first.target_orbit.eccentricity, 1.0 / 3.0, places=12)

        half_period = orbital_period(3.0, self.mu) / 2.0
        self.assertAlmostEqual(second.execution_time, half_period, delta=1e-15)
        self.assertAlmostEqual(second.target_orbit.semi_major_axis, 4.0, places=12)
        self.assertAlmostEqual(second.target_orbit.eccentricity, 0.0, places=12)
        self.assertEqual(second.target_orbit.argument_of_periapsis, 0.0)
        self.assertEqual(second.start_orbit, first.target_orbit)

        assert_continuous(transfer, self.mu)

    def test_delta_v_matches_closed_form(self):
        r1, r2 = 2.0, 4.0
        transfer = hohmann_transfer(Orbit(r1), Orbit(r2), self.mu, 0.0)
        dv1 = math.sqrt(self.mu / r1) * (math.sqrt(2.0 * r2 / (r1 + r2)) - 1.0)
        dv2 = math.sqrt(self.mu / r2) * (1.0 - math.sqrt(2.0 * r1 / (r1 + r2)))
        self.assertAlmostEqual(transfer.maneuvers[0].delta_v(self.mu) / dv1, 1.0, places=8)
        self.assertAlmostEqual(transfer.maneuvers[1].delta_v(self.mu) / dv2, 1.0, places=8)
        self.assertAlmostEqual(transfer.total_delta_v(self.mu) / (dv1 + dv2), 1.0, places=8)

    def test_lower_orbit(self):
        transfer = plan_transfer(Orbit(4.0), Orbit(2.0), self.mu, 0.0)
        transfer_orbit = transfer.maneuvers[0].target_orbit
        self.assertAlmostEqual(transfer_orbit.semi_major_axis, 3.0, places=12)
        self.assertAlmostEqual(transfer_orbit.eccentricity, 1.0 / 3.0, places=12)
        assert_continuous(transfer, self.mu)

    def test_departure_later_in_orbit(self):
        """Departure from an arbitrary phase arrives on the opposite side of the parent."""
        start = Orbit(2.0, 0.0, 0.4, 1.3)
        t0 = 2.0
        transfer = plan_transfer(start, Orbit(4.0), self.mu, t0)
        assert_continuous(transfer, self.mu)

        arrival = transfer.maneuvers[1]
        r_dep = np.asarray(state_at_time(start, self.mu, t0).r)
        r_arr = np.asarray(state_at_time(arrival.target_orbit, self.mu, arrival.execution_time).r)
        assert_allclose(r_arr, -2.0 * r_dep, atol=1e-9)

        for m in transfer.maneuvers:
            assert_tangent(m, self.mu)

    def test_same_radius(self):
        transfer = plan_transfer(Orbit(3.0), Orbit(3.0), self.mu, 1.0)
        self.assertAlmostEqual(transfer.maneuvers[0].target_orbit.eccentricity, 0.0, places=14)
        circular_speed = math.sqrt(self.mu / 3.0)
        self.assertLess(transfer.total_delta_v(self.mu) / circular_speed, 1e-9)

    def test_requires_circular_orbits(self):
        with self.assertRaises(InvalidOrbitError):
            hohmann_transfer(Orbit(2.0, 0.1), Orbit(4.0), self.mu, 0.0)

    def test_idempotent(self):
        a = plan_transfer(Orbit(2.0, 0.0, 0.2, 0.5), Orbit(5.0), self.mu, 3.0)
        b = plan_transfer(Orbit(2.0, 0.0, 0.2, 0.5), Orbit(5.0), self.mu, 3.0)
        self.assertEqual(a, b)


class TestPlanTransferValidation(unittest.TestCase):

    def test_fixed_orbits_rejected(self):
        with self.assertRaises(InvalidOrbitError):
            plan_transfer(Orbit(0.0), Orbit(4.0), 1.0, 0.0)
        with self.assertRaises(InvalidOrbitError):
            plan_transfer(Orbit(2.0), Orbit(0.0), 1.0, 0.0)

    def test_invalid_eccentricity(self):
        with self.assertRaises(InvalidOrbitError):
            plan_transfer(Orbit(2.0), Orbit(4.0, 1.0), 1.0, 0.0)

    def test_invalid_mu(self):
        with self.assertRaises(InvalidOrbitError):
            plan_transfer(Orbit(2.0), Orbit(4.0), 0.0, 0.0)

    def test_invalid_time(self):
        with self.assertRaises(InvalidOrbitError):
            plan_transfer(Orbit(2.0), Orbit(4.0), 1.0, float('inf'))


class TestTangentialTransfer(unittest.TestCase):

    mu = 1.0

    def test_eccentric_start_circular_target(self):
        """Departing at periapsis r=1.6 onto a circle of radius 4."""
        transfer = plan_transfer(Orbit(2.0, 0.2), Orbit(4.0), self.mu, 0.0)
        first, second = transfer.maneuvers

        self.assertAlmostEqual(first.target_orbit.semi_major_axis, 2.8, places=10)
        self.assertAlmostEqual(first.target_orbit.eccentricity, 3.0 / 7.0, places=10)
        self.assertAlmostEqual(second.execution_time, orbital_period(2.8, self.mu) / 2.0, places=9)
        self.assertAlmostEqual(second.target_orbit.semi_major_axis, 4.0, places=12)
        self.assertEqual(second.target_orbit.eccentricity, 0.0)

        assert_continuous(transfer, self.mu)
        assert_tangent(first, self.mu)
        assert_tangent(second, self.mu)

    def test_circular_start_arrives_at_target_periapsis(self):
        """The only tangent arrival is the target periapsis, opposite the departure point."""
        start = Orbit(2.0, 0.0, 0.0, math.pi)  # starts at polar angle pi
        target = Orbit(4.0, 0.25)
        transfer = plan_transfer(start, target, self.mu, 0.0)
        first, second = transfer.maneuvers

        self.assertAlmostEqual(first.target_orbit.semi_major_axis, 2.5, places=9)
        self.assertAlmostEqual(first.target_orbit.eccentricity, 0.2, places=9)
        self.assertAlmostEqual(second.execution_time, orbital_period(2.5, self.mu) / 2.0, places=8)

        r_arr = np.asarray(state_at_time(second.target_orbit, self.mu, second.execution_time).r)
        assert_allclose(r_arr, [3.0, 0.0, 0.0], atol=1e-8)

        assert_continuous(transfer, self.mu)
        assert_tangent(second, self.mu)

    def test_rotated_eccentric_target(self):
        target = Orbit(4.0, 0.25, math.pi / 2)
        transfer = tangential_transfer(Orbit(2.0), target, self.mu, 0.0)
        first, second = transfer.maneuvers

        self.assertGreater(second.execution_time, 0.0)
        self.assertEqual(second.target_orbit[:3], target[:3])
        self.assertLess(first.target_orbit.eccentricity, 1.0)
        self.assertTrue(all(math.isfinite(x) for x in second.target_orbit))

        r_arr = np.linalg.norm(np.asarray(state_at_time(second.target_orbit, self.mu, second.execution_time).r))
        self.assertGreaterEqual(r_arr, 3.0 - 1e-9)
        self.assertLessEqual(r_arr, 5.0 + 1e-9)

        assert_continuous(transfer, self.mu, rtol=1e-8)
        assert_tangent(second, self.mu)

    def test_idempotent(self):
        a = plan_transfer(Orbit(2.0), Orbit(4.0, 0.25, math.pi / 2), self.mu, 1.5)
        b = plan_transfer(Orbit(2.0), Orbit(4.0, 0.25, math.pi / 2), self.mu, 1.5)
        self.assertEqual(a, b)


def test_unresolved_bracket_raises_convergence_error():
    with pytest.raises(TransferConvergenceError) as excinfo:
        plan_transfer(Orbit(2.0), Orbit(4.0, 0.25, math.pi / 2), 1.0, 0.0, max_iter=1)
    assert isinstance(excinfo.value, ConvergenceError)
    assert isinstance(excinfo.value, TransferInfeasibleError)


def test_no_bracketed_root_is_infeasible():
    # With only the end points sampled no sign change is bracketed
    with pytest.raises(TransferInfeasibleError) as excinfo:
        plan_transfer(Orbit(2.0), Orbit(4.0, 0.25, math.pi / 2), 1.0, 0.0, sample_count=2)
    assert not isinstance(excinfo.value, ConvergenceError)


def test_departure_outside_target_is_infeasible():
    """Departing from just outside the target ellipse, no apsis-at-departure ellipse is tangent to it."""
    with pytest.raises(TransferInfeasibleError) as excinfo:
        plan_transfer(Orbit(6.0, 0.3), Orbit(4.0, 0.25, 2.0), 1.0, 0.0)
    assert not isinstance(excinfo.value, ConvergenceError)


def test_vanishing_denominator_is_rejected():
    r_d, a_t, e_t = 2.0, 4.0, 0.25
    # At k = 1 the target radius is 4; pick the departure angle so that cos(sweep) = 1/2
    nu_t = math.acos(((1.0 - e_t**2) / 1.0 - 1.0) / e_t)
    theta_d = nu_t - math.pi / 3.0
    _, sweep, denominator, eps = _arrival_geometry(1.0, 1.0, r_d, theta_d, a_t, e_t, 0.0)

    assert_allclose(float(sweep), math.pi / 3.0, atol=1e-12)
    assert abs(float(denominator)) <= 1e-12 * r_d
    assert not _is_valid(float(denominator), float(eps), r_d)
    assert _make_arrival(1.0, 1.0, (r_d, theta_d, a_t, e_t, 0.0)) is None

    # The denominator guard rejects on its own, even with an acceptable eccentricity
    assert not _is_valid(1e-14, 0.5, r_d)
    assert _is_valid(1e-3, 0.5, r_d)


def test_same_eccentric_orbit_is_a_zero_delta_v_transfer():
    orbit = Orbit(2.0, 0.2, 0.3, 0.4)
    transfer = plan_transfer(orbit, orbit, 1.0, 1.0)
    assert len(transfer) == 1
    assert transfer.departure_time == 1.0
    assert transfer.final_orbit == orbit
    assert transfer.total_delta_v(1.0) == 0.0

    # Same ellipse, different phase: the body stays where it is
    shifted = plan_transfer(orbit, orbit._replace(initial_mean_anomaly=2.0), 1.0, 1.0)
    assert shifted.final_orbit == orbit


if __name__ == '__main__':
    unittest.main()
