#!/usr/bin/env python3
"""
Tests for the configuration manager and example definitions.
"""
import json
import unittest
import os
import sys
import tempfile
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from config.config_manager import AppConfig, ConfigManager
from config.default_config import EXAMPLES, get_example
from model.exceptions import ConfigurationError, EvaluationError


class TestConfigManager(unittest.TestCase):
    """Tests for ConfigManager."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def _write_config(self, payload):
        path = os.path.join(self.tmp.name, "config.json")
        with open(path, "w") as f:
            json.dump(payload, f)
        return path

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        config = ConfigManager().app_config
        self.assertEqual(config.model_n_draws, 1000)
        self.assertEqual(config.pareto_k_threshold, 0.7)
        self.assertEqual(config.noise_factor, 2.0)
        self.assertEqual(config.sampler_config()["n_chains"], 2)

    @patch.dict(os.environ, {}, clear=True)
    def test_load_from_file(self):
        path = self._write_config({"example": "birthweight", "model_n_draws": 300, "unknown_key": 1})
        config = ConfigManager(path).app_config
        self.assertEqual(config.example, "birthweight")
        self.assertEqual(config.model_n_draws, 300)
        self.assertFalse(hasattr(config, "unknown_key"))

    @patch.dict(os.environ, {}, clear=True)
    def test_invalid_json_raises(self):
        path = os.path.join(self.tmp.name, "broken.json")
        with open(path, "w") as f:
            f.write("{not json")
        with self.assertRaises(ConfigurationError):
            ConfigManager(path)

    @patch.dict(os.environ, {"MODEL_EVAL_MODEL_N_CHAINS": "4", "MODEL_EVAL_CREATE_PLOTS": "false",
                             "MODEL_EVAL_NOISE_FACTOR": "1.5"}, clear=True)
    def test_env_overrides(self):
        config = ConfigManager().app_config
        self.assertEqual(config.model_n_chains, 4)
        self.assertFalse(config.create_plots)
        self.assertEqual(config.noise_factor, 1.5)

    @patch.dict(os.environ, {"MODEL_EVAL_MODEL_N_DRAWS": "many"}, clear=True)
    def test_bad_env_value_raises(self):
        with self.assertRaises(ConfigurationError):
            ConfigManager()

    @patch.dict(os.environ, {}, clear=True)
    def test_update_skips_none(self):
        manager = ConfigManager()
        manager.update({"random_seed": None, "results_dir": "out"})
        self.assertEqual(manager.app_config.random_seed, 42)
        self.assertEqual(manager.app_config.results_dir, "out")

    @patch.dict(os.environ, {}, clear=True)
    def test_validate_rejects_bad_values(self):
        manager = ConfigManager()
        manager.app_config.model_target_accept = 1.5
        with self.assertRaises(ConfigurationError):
            manager.validate()

    @patch.dict(os.environ, {"MODEL_EVAL_LOG_LEVEL": "VERBOSE"}, clear=True)
    def test_validate_rejects_unknown_log_level(self):
        manager = ConfigManager()
        with self.assertRaises(ConfigurationError) as ctx:
            manager.validate()
        self.assertIn("log_level", str(ctx.exception))

    @patch.dict(os.environ, {}, clear=True)
    def test_validate_caps_overlay_draws(self):
        manager = ConfigManager()
        manager.update({"model_n_draws": 20, "model_n_chains": 2, "ppc_overlay_draws": 100})
        manager.validate()
        self.assertEqual(manager.app_config.ppc_overlay_draws, 40)

    @patch.dict(os.environ, {}, clear=True)
    def test_save_config_round_trips(self):
        manager = ConfigManager()
        manager.app_config.example = "birthweight"
        path = os.path.join(self.tmp.name, "nested", "saved.json")
        manager.save_config(path)

        reloaded = ConfigManager(path).app_config
        self.assertEqual(reloaded, manager.app_config)


    @patch.dict(os.environ, {}, clear=True)
    def test_save_config_failure_raises_evaluation_error(self):
        blocker = os.path.join(self.tmp.name, "blocker")
        open(blocker, "w").close()
        with self.assertRaises(EvaluationError):
            ConfigManager().save_config(os.path.join(blocker, "saved.json"))

class TestExamples(unittest.TestCase):
    """Tests for the bundled example definitions."""

    def test_examples_declared(self):
        self.assertEqual(sorted(EXAMPLES), ["birthweight", "congress"])
        for example in EXAMPLES.values():
            self.assertGreaterEqual(len(example.models), 2)
            self.assertTrue(all(spec.response == example.schema.response for spec in example.models))
            self.assertTrue(example.statistics)

    def test_congress_groups_by_past_vote_terciles(self):
        congress = get_example("congress")
        self.assertEqual(congress.group_by, "past_vote")
        self.assertEqual(list(congress.cut_points), [0.0, 0.33, 0.67, 1.0])

    def test_unknown_example_raises(self):
        with self.assertRaises(ConfigurationError):
            get_example("missing")

    def test_sampler_config_carries_diagnostic_thresholds(self):
        sampler = AppConfig(model_n_draws=250, min_ess=100).sampler_config()
        self.assertEqual(sampler["n_draws"], 250)
        self.assertEqual(sampler["min_ess"], 100)
        self.assertEqual(sampler["rhat_threshold"], 1.01)


if __name__ == "__main__":
    unittest.main()
