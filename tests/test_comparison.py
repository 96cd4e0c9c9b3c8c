#!/usr/bin/env python3
"""
Tests for the ELPD comparator.
"""
import unittest
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

import numpy as np

from evaluation.comparison import ComparisonTable, compare, difference_se
from model.base_model import ElpdEstimate
from model.exceptions import ModelEvaluationError
from tests.helpers import make_posterior, pareto_warning


class TestCompare(unittest.TestCase):
    """Tests for compare()."""

    def test_three_models_best_first_with_zero_delta(self):
        mod1 = make_posterior("mod1", elpd=-120.0)
        mod2 = make_posterior("mod2", elpd=-95.5)
        mod3 = make_posterior("mod3", elpd=-101.0)

        table = compare([mod1, mod2, mod3])

        self.assertEqual(len(table), 3)
        self.assertEqual(table.models, ["mod2", "mod3", "mod1"])
        self.assertEqual(table.best.model, "mod2")
        self.assertEqual(table.best.elpd_diff, 0.0)
        self.assertEqual(table.best.se_diff, 0.0)
        self.assertEqual([row.rank for row in table], [1, 2, 3])

    def test_elpd_non_increasing_and_diffs_non_positive(self):
        rng = np.random.default_rng(7)
        elpds = rng.normal(-100, 20, size=6)
        models = {f"m{i}": make_posterior(f"m{i}", elpd=e) for i, e in enumerate(elpds)}

        table = compare(models)

        values = [row.elpd for row in table]
        self.assertEqual(len(table), len(models))
        self.assertTrue(all(a >= b for a, b in zip(values, values[1:])))
        self.assertTrue(all(row.elpd_diff <= 0 for row in table))
        for row in table:
            self.assertAlmostEqual(row.elpd_diff, row.elpd - table.best.elpd)

    def test_accepts_name_model_pairs(self):
        table = compare([("a", make_posterior("x", elpd=-3.0)), ("b", make_posterior("y", elpd=-1.0))])
        self.assertEqual(table.models, ["b", "a"])
        self.assertEqual(table.candidate_order, ("a", "b"))

    def test_ties_keep_supplied_order(self):
        table = compare([make_posterior("first", elpd=-10.0), make_posterior("second", elpd=-10.0)])
        self.assertEqual(table.models, ["first", "second"])

    def test_paired_se_from_pointwise(self):
        best_pw = np.array([-1.0, -2.0, -1.5, -0.5])
        other_pw = np.array([-1.5, -2.0, -2.5, -0.5])
        best = make_posterior("best", elpd=best_pw.sum(), n_obs=4, pointwise=best_pw)
        other = make_posterior("other", elpd=other_pw.sum(), n_obs=4, pointwise=other_pw)

        row = compare([best, other])[1]

        diff = other_pw - best_pw
        self.assertAlmostEqual(row.se_diff, np.sqrt(4 * np.var(diff)))
        self.assertAlmostEqual(row.elpd_diff, -1.5)

    def test_se_falls_back_to_independent_errors(self):
        best = ElpdEstimate(elpd=-10.0, se=3.0)
        other = ElpdEstimate(elpd=-12.0, se=4.0)
        self.assertAlmostEqual(difference_se(other, best), 5.0)

    def test_within_noise_flag_does_not_drop_rows(self):
        best = make_posterior("best", elpd=-100.0, se=5.0)
        close = make_posterior("close", elpd=-101.0, se=5.0)
        far = make_posterior("far", elpd=-200.0, se=5.0)

        table = compare([far, close, best], noise_factor=2.0)

        self.assertEqual(len(table), 3)
        self.assertFalse(table.row_for("best").within_noise)
        self.assertTrue(table.row_for("close").within_noise)
        self.assertFalse(table.row_for("far").within_noise)
        self.assertIn("close", table.format())

    def test_estimation_warnings_propagate(self):
        warning = pareto_warning("shaky")
        table = compare([make_posterior("ok", elpd=-1.0), make_posterior("shaky", elpd=-2.0, warnings=[warning])])

        self.assertEqual(table.warnings, [warning])
        self.assertIn("Pareto k", table.row_for("shaky").warning)
        self.assertEqual(table.row_for("ok").warning, "")
        self.assertIn("WARNING [shaky]", table.format())

    def test_mismatched_observation_counts_raise(self):
        with self.assertRaises(ModelEvaluationError):
            compare([make_posterior("a", elpd=-1.0, n_obs=10), make_posterior("b", elpd=-2.0, n_obs=11)])

    def test_empty_candidate_set_raises(self):
        with self.assertRaises(ModelEvaluationError):
            compare({})

    def test_duplicate_names_raise(self):
        with self.assertRaises(ModelEvaluationError):
            compare([make_posterior("a", elpd=-1.0), make_posterior("a", elpd=-2.0)])

    def test_to_frame_columns(self):
        table = compare([make_posterior("a", elpd=-1.0), make_posterior("b", elpd=-2.0)])
        frame = table.to_frame()
        self.assertEqual(list(frame.columns), list(ComparisonTable.COLUMNS))
        self.assertEqual(list(frame["model"]), ["a", "b"])


if __name__ == "__main__":
    unittest.main()
