"""Tests for Maneuver and Transfer validation and serialization."""
import tempfile
import unittest
from pathlib import Path

from pydantic import ValidationError

from kepler_transfer import Maneuver, Orbit, Transfer


def _maneuver(t, a_from=2.0, a_to=3.0):
    return Maneuver.create(Orbit(a_from), Orbit(a_to, 0.2), t)


class TestManeuver(unittest.TestCase):

    def test_create(self):
        m = _maneuver(1.5)
        self.assertEqual(m.start_orbit, Orbit(2.0))
        self.assertEqual(m.target_orbit, Orbit(3.0, 0.2))
        self.assertEqual(m.execution_time, 1.5)

    def test_invalid_target_orbit(self):
        with self.assertRaises(ValidationError):
            Maneuver.create(Orbit(2.0), Orbit(3.0, 1.2), 0.0)

    def test_non_finite_time(self):
        with self.assertRaises(ValidationError) as cm:
            _maneuver(float('nan'))
        self.assertIn("execution_time must be finite", str(cm.exception))

    def test_frozen(self):
        m = _maneuver(0.0)
        with self.assertRaises(ValidationError):
            m.execution_time = 2.0

    def test_delta_v_of_identity_maneuver_is_zero(self):
        m = Maneuver.create(Orbit(2.0, 0.1, 0.3), Orbit(2.0, 0.1, 0.3), 4.0)
        self.assertAlmostEqual(m.delta_v(1.0), 0.0, places=14)


class TestTransfer(unittest.TestCase):

    def test_execution_order(self):
        with self.assertRaises(ValidationError) as cm:
            Transfer(maneuvers=(_maneuver(2.0), _maneuver(1.0)))
        self.assertIn("Maneuver execution times must be non-decreasing", str(cm.exception))

    def test_equal_times_allowed(self):
        transfer = Transfer(maneuvers=(_maneuver(1.0), _maneuver(1.0)))
        self.assertEqual(len(transfer), 2)

    def test_empty(self):
        with self.assertRaises(ValidationError):
            Transfer(maneuvers=())

    def test_properties(self):
        transfer = Transfer(maneuvers=(_maneuver(1.0, 2.0, 3.0), _maneuver(4.0, 3.0, 5.0)))
        self.assertEqual(transfer.departure_time, 1.0)
        self.assertEqual(transfer.arrival_time, 4.0)
        self.assertEqual(transfer.initial_orbit, Orbit(2.0))
        self.assertEqual(transfer.final_orbit, Orbit(5.0, 0.2))

    def test_save_load(self):
        transfer = Transfer(maneuvers=(_maneuver(1.0), _maneuver(2.5)))
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / 'transfer.json'
            transfer.save(path)
            loaded = Transfer.load(path)
        self.assertEqual(loaded, transfer)
        self.assertIsInstance(loaded.maneuvers[0].target_orbit, Orbit)


if __name__ == '__main__':
    unittest.main()
