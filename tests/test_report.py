#!/usr/bin/env python3
"""
Tests for the evaluation report and plots.
"""
import json
import unittest
import os
import sys
import tempfile

sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

import numpy as np

from evaluation.comparison import compare
from evaluation.ppc import bin_groups, check_outcome, check_statistic, count_above
from evaluation.report import SECTIONS, EvaluationReport
from evaluation.visualization import EvaluationPlotter
from model.exceptions import EvaluationError, FitConvergenceWarning, VisualizationError
from tests.helpers import make_posterior, pareto_warning


class ReportFixture(unittest.TestCase):

    def setUp(self):
        self.observed = np.random.default_rng(0).normal(size=20)
        self.models = {
            "beta": make_posterior("beta", elpd=-50.0, seed=1, warnings=[pareto_warning("beta")]),
            "alpha": make_posterior("alpha", elpd=-40.0, seed=2),
        }
        self.convergence = FitConvergenceWarning("beta: max R-hat 1.050 exceeds 1.01")
        self.table = compare(self.models)

        groups = bin_groups(np.linspace(0, 1, 20), [0, 0.5, 1])
        self.overlays, self.checks = [], []
        # Built in reverse order so the report has to reorder them
        for name in ["alpha", "beta"]:
            replicates = self.models[name].predict_samples()
            self.overlays.extend(check_outcome(replicates, self.observed, n_draws=30, rng=0,
                                               groups=groups, model_name=name))
            self.checks.append(check_statistic(replicates, self.observed, count_above(1.0), model_name=name))

        self.report = EvaluationReport(
            dataset="toy",
            comparison=self.table,
            overlays=self.overlays,
            statistic_checks=self.checks,
            fit_warnings={"beta": [self.convergence], "alpha": []},
        )


class TestEvaluationReport(ReportFixture):
    """Tests for EvaluationReport."""

    def test_check_sections_follow_candidate_order(self):
        self.assertEqual(self.report.model_order, ["beta", "alpha"])
        self.assertEqual([o.model for o in self.report.overlays], ["beta", "beta", "alpha", "alpha"])
        self.assertEqual([c.model for c in self.report.statistic_checks], ["beta", "alpha"])

    def test_warnings_attached_to_sections(self):
        comparison = self.report.section_warnings("elpd_comparison")
        self.assertEqual(len(comparison), 2)
        self.assertTrue(any(w.startswith("EstimationWarning: beta:") for w in comparison))
        self.assertTrue(any(w.startswith("FitConvergenceWarning: beta:") for w in comparison))

        for section in ("outcome_checks", "statistic_checks"):
            self.assertEqual(self.report.section_warnings(section),
                             ["FitConvergenceWarning: beta: max R-hat 1.050 exceeds 1.01"])

        with self.assertRaises(KeyError):
            self.report.section_warnings("unknown")

    def test_render_text_shows_sections_in_order_and_every_warning(self):
        text = self.report.render_text()

        positions = [text.index(marker) for marker in (
            "ELPD comparison", "outcome distribution", "test statistics")]
        self.assertEqual(positions, sorted(positions))
        for warning in self.report.warnings:
            self.assertIn(warning, text)
        self.assertLess(text.index("alpha"), text.index("beta"))

    def test_estimation_warning_rendered_once(self):
        text = self.report.render_text()
        message = str(pareto_warning("beta"))

        self.assertEqual(text.count(message), 1)
        self.assertIn(f"WARNING [beta] {message}", self.table.format())
        self.assertNotIn(message, self.table.format(show_warnings=False))

    def test_to_dict_is_json_ready(self):
        payload = self.report.to_dict()

        self.assertEqual([key for key in payload if key in SECTIONS], list(SECTIONS))
        self.assertEqual(payload["elpd_comparison"]["table"][0]["model"], "alpha")
        self.assertEqual(payload["elpd_comparison"]["table"][0]["elpd_diff"], 0.0)
        self.assertEqual(len(payload["statistic_checks"]["entries"][0]["replicated_values"]), 200)
        json.dumps(payload)

    def test_save_writes_text_and_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            paths = self.report.save(os.path.join(tmp, "toy"))

            self.assertTrue(os.path.exists(paths["report_text"]))
            with open(paths["report_json"]) as f:
                self.assertEqual(json.load(f)["dataset"], "toy")

    def test_save_failure_raises_evaluation_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            blocker = os.path.join(tmp, "toy")
            open(blocker, "w").close()
            with self.assertRaises(EvaluationError):
                self.report.save(blocker)


class TestEvaluationPlotter(ReportFixture):
    """Tests for EvaluationPlotter."""

    def test_plot_all_writes_pngs(self):
        with tempfile.TemporaryDirectory() as tmp:
            plotter = EvaluationPlotter(tmp)
            paths = plotter.plot_all(self.table, self.report.overlays, self.report.statistic_checks)

            # comparison + one overlay figure per model + one per statistic check
            self.assertEqual(len(paths), 1 + 2 + 2)
            for path in paths:
                self.assertTrue(path.exists())
                self.assertEqual(path.parent.name, "plots")
                self.assertEqual(path.suffix, ".png")

    def test_empty_overlay_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(VisualizationError):
                EvaluationPlotter(tmp).plot_density_overlay([])


if __name__ == "__main__":
    unittest.main()
