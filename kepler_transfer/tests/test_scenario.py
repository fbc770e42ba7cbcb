"""Tests for scenario validation, persistence and the built-in demos."""
import tempfile
import unittest
from pathlib import Path

import numpy as np
from pydantic import ValidationError

from kepler_transfer import DEMO_SCENARIOS, BodySpec, Orbit, Scenario, TransferSpec
from kepler_transfer.scenario import load_scenario


class TestScenarioValidation(unittest.TestCase):

    def test_duplicate_names(self):
        with self.assertRaises(ValidationError) as cm:
            Scenario(name='dup', bodies=[BodySpec(name='Sun'), BodySpec(name='Sun')])
        self.assertIn("Duplicate body name", str(cm.exception))

    def test_parent_must_be_declared_first(self):
        with self.assertRaises(ValidationError) as cm:
            Scenario(name='order', bodies=[
                BodySpec(name='Moon', parent='Earth', orbit=Orbit(1.0)),
                BodySpec(name='Earth', mass=1.0),
            ])
        self.assertIn("not declared before it", str(cm.exception))

    def test_transfer_for_unknown_body(self):
        with self.assertRaises(ValidationError):
            Scenario(
                name='ghost',
                bodies=[BodySpec(name='Sun', mass=1.0)],
                transfers=[TransferSpec(body='Ghost', target_orbit=Orbit(2.0), execution_time=0.0)],
            )

    def test_invalid_orbit(self):
        with self.assertRaises(ValidationError):
            BodySpec(name='Comet', parent='Sun', orbit=Orbit(1.0, 1.0))

    def test_no_bodies(self):
        with self.assertRaises(ValidationError):
            Scenario(name='empty', bodies=[])


class TestScenarioFiles(unittest.TestCase):

    def test_save_load(self):
        scenario = DEMO_SCENARIOS['transfer']
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / 'transfer.json'
            scenario.save(path)
            loaded = Scenario.load(path)
            from_path = load_scenario(path)
        self.assertEqual(loaded, scenario)
        self.assertEqual(from_path, scenario)
        self.assertIsInstance(loaded.bodies[1].orbit, Orbit)

    def test_load_builtin_by_name(self):
        self.assertIs(load_scenario('moons'), DEMO_SCENARIOS['moons'])


class TestDemoScenarios(unittest.TestCase):

    def test_all_demos_build_and_tick(self):
        for name, scenario in DEMO_SCENARIOS.items():
            sim = scenario.build_simulation()
            self.assertEqual(len(sim), len(scenario.bodies), msg=name)
            for t in np.linspace(0.0, 5.0, 6):
                result = sim.tick(float(t))
                self.assertTrue(result.ok, msg=f"{name} failed at t={t}: {result.failures}")

    def test_transfer_demo(self):
        sim = DEMO_SCENARIOS['transfer'].build_simulation()
        ship = sim.find('Ship')
        transfer_orbit = ship.schedule.maneuvers()[0].target_orbit
        self.assertAlmostEqual(transfer_orbit.semi_major_axis, 3.0, places=12)

        sim.tick(2.0)
        self.assertEqual(ship.orbit, transfer_orbit)

    def test_eccentric_demo_queues_tangential_transfer(self):
        sim = DEMO_SCENARIOS['eccentric'].build_simulation()
        ship = sim.find('Ship')
        self.assertEqual(ship.schedule.pending_maneuvers, 2)
        self.assertEqual(ship.schedule.final_orbit[:3], (4.0, 0.25, np.pi / 2))


if __name__ == '__main__':
    unittest.main()
