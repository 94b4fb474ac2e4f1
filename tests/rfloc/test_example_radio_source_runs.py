"""Smoke tests for the radio source estimation example."""

import os
import subprocess
import sys
import unittest
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np

from radio_source_examples.example_radio_source_estimation import (
    PRESETS,
    plot_results,
    run_preset,
)


class TestExampleRuns(unittest.TestCase):
    """Run the example presets with a few trials."""

    def setUp(self):
        self.workspace_root = Path(__file__).parent.parent.parent

    def test_noiseless_preset_is_exact(self):
        np.random.seed(0)
        results = run_preset("noiseless", n_trials=3, verbose=False)

        self.assertEqual(results["failures"], 0)
        self.assertTrue(np.all(results["ranging"] < 1e-6))
        self.assertTrue(np.all(results["ranging_rssi"] < 1e-6))
        self.assertTrue(np.all(results["power"] < 1e-6))

    def test_all_presets_run(self):
        np.random.seed(1)
        for name in PRESETS:
            results = run_preset(name, n_trials=2, verbose=False)
            self.assertEqual(len(results["ranging"]) + results["failures"], 2)
            plot_results(results, name)
            plt.close("all")

    def test_list_presets_cli(self):
        env = dict(os.environ, MPLBACKEND="Agg")
        completed = subprocess.run(
            [sys.executable, "-m", "radio_source_examples.example_radio_source_estimation",
             "--list-presets"],
            cwd=self.workspace_root,
            env=env,
            capture_output=True,
            text=True,
            timeout=120,
        )

        self.assertEqual(completed.returncode, 0, completed.stderr)
        for name in PRESETS:
            self.assertIn(name, completed.stdout)


if __name__ == "__main__":
    unittest.main()
