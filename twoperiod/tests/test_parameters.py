import os
import tempfile
import unittest

from twoperiod.ConsumptionSaving.ConsTwoPeriodModel import (
    TwoPeriodConsumerType,
    init_two_period,
)
from twoperiod.parameters import (
    inherit,
    load_all_parameters,
    load_parameters,
    read_config,
)


class testShippedCalibrations(unittest.TestCase):
    def test_baseline(self):
        params = load_parameters()
        self.assertEqual(params["DiscFac"], 0.95)
        self.assertEqual(params["aCount"], 9)
        self.assertEqual(params["penalty"], 1e9)
        self.assertIsNone(params["num_jobs"])

    def test_baseline_matches_defaults(self):
        params = load_parameters("baseline")
        for key, value in params.items():
            self.assertEqual(init_two_period[key], value)

    def test_extends(self):
        params = load_parameters("root_finding")
        self.assertEqual(params["method"], "root")
        self.assertEqual(params["DiscFac"], 0.95)
        self.assertNotIn("EXTENDS", params)

    def test_load_all(self):
        all_params = load_all_parameters()
        self.assertIn("patient", all_params)
        self.assertEqual(all_params["patient"]["DiscFac"], 0.99)
        self.assertEqual(all_params["fine_grid"]["xCount"], 500)

    def test_unknown_name(self):
        with self.assertRaises(KeyError) as cm:
            load_parameters("impatient")
        self.assertIn("baseline", str(cm.exception))

    def test_builds_agent(self):
        agent = TwoPeriodConsumerType(**load_parameters("fine_grid"))
        self.assertEqual(agent.aGrid.size, 81)
        self.assertEqual(agent.xGrid.size, 500)


class testCustomCalibrations(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def write(self, text):
        path = os.path.join(self.tmpdir.name, "params.yaml")
        with open(path, "w") as f:
            f.write(text)
        return path

    def test_chain(self):
        path = self.write(
            "a:\n  DiscFac: 0.9\n  aCount: 3\n"
            "b:\n  EXTENDS: a\n  aCount: 5\n"
            "c:\n  EXTENDS: b\n  method: root\n"
        )
        params = load_parameters("c", path)
        self.assertEqual(params, {"DiscFac": 0.9, "aCount": 5, "method": "root"})

    def test_circular(self):
        path = self.write("a:\n  EXTENDS: b\nb:\n  EXTENDS: a\n")
        self.assertRaises(ValueError, load_parameters, "a", path)

    def test_unknown_parent(self):
        path = self.write("a:\n  EXTENDS: nowhere\n  DiscFac: 0.9\n")
        self.assertRaises(KeyError, load_parameters, "a", path)

    def test_empty_file(self):
        path = self.write("")
        self.assertRaises(ValueError, read_config, path)

    def test_inherit_does_not_mutate(self):
        config = {"a": {"DiscFac": 0.9}, "b": {"EXTENDS": "a", "DiscFac": 0.5}}
        inherit(config["b"], config)
        self.assertEqual(config, {"a": {"DiscFac": 0.9}, "b": {"EXTENDS": "a", "DiscFac": 0.5}})
