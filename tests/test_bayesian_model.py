#!/usr/bin/env python3
"""
Tests for the Bayesian GLM components: specification, design building,
sampler settings, convergence checks and a small end-to-end fit.
"""
import copy
import unittest
import os
import sys
import warnings
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

import arviz as az
import numpy as np
import pandas as pd

from data.generate_data import simulate_birthweight, simulate_congress
from model.base_model import ModelSpec
from model.bayesian.model_builder import BayesianModelBuilder
from evaluation.comparison import compare
from model.bayesian_model import BayesianGLM, fit_model, reliable_k_limit
from model.diagnostics import BayesianDiagnostics
from model.exceptions import (
    DataFormatError,
    EstimationWarning,
    FitConvergenceWarning,
    ModelBuildError,
    ModelError,
    SamplingError,
)
from model.sampling import BayesianSampler

SMALL_SAMPLER = {"n_draws": 200, "n_tune": 200, "n_chains": 2, "n_cores": 1}
TINY_SAMPLER = {"n_draws": 25, "n_tune": 200, "n_chains": 2, "n_cores": 1}


class TestModelSpec(unittest.TestCase):
    """Tests for ModelSpec validation."""

    def test_response_parsed_from_formula(self):
        spec = ModelSpec("m", "vote ~ past_vote + incumbent_party")
        self.assertEqual(spec.response, "vote")
        self.assertEqual(spec.family, "gaussian")

    def test_invalid_specs_raise(self):
        with self.assertRaises(ModelBuildError):
            ModelSpec("m", "past_vote")
        with self.assertRaises(ModelBuildError):
            ModelSpec("m", "y ~ x", family="poisson")
        with self.assertRaises(ModelBuildError):
            ModelSpec("", "y ~ x")


class TestBayesianModelBuilder(unittest.TestCase):
    """Tests for design preparation and model graph construction."""

    def setUp(self):
        self.builder = BayesianModelBuilder()
        self.data = simulate_congress(n_obs=40, seed=0)

    def test_design_is_centered(self):
        spec = ModelSpec("m", "vote ~ past_vote + incumbent_party")
        model_data = self.builder.prepare_model_data(spec, self.data)

        self.assertEqual(model_data.column_names[0], "Intercept")
        self.assertEqual(model_data.n_obs, 40)
        self.assertEqual(model_data.n_params, 4)
        np.testing.assert_allclose(model_data.X[:, 0], 1.0)
        np.testing.assert_allclose(model_data.X[:, 1:].mean(axis=0), 0.0, atol=1e-12)

    def test_design_for_new_rows_uses_fitted_centering(self):
        spec = ModelSpec("m", "vote ~ past_vote")
        model_data = self.builder.prepare_model_data(spec, self.data)

        new_rows = pd.DataFrame({"past_vote": [0.2, 0.8]})
        X_new = self.builder.design_for(model_data, new_rows)

        self.assertEqual(X_new.shape, (2, 2))
        expected = np.array([0.2, 0.8]) - self.data["past_vote"].mean()
        np.testing.assert_allclose(X_new[:, 1], expected)

    def test_design_for_missing_column_raises(self):
        model_data = self.builder.prepare_model_data(ModelSpec("m", "vote ~ past_vote"), self.data)
        with self.assertRaises(DataFormatError):
            self.builder.design_for(model_data, pd.DataFrame({"other": [0.5]}))

    def test_missing_column_raises(self):
        with self.assertRaises(DataFormatError):
            self.builder.prepare_model_data(ModelSpec("m", "vote ~ turnout"), self.data)

    def test_single_level_categorical_raises(self):
        data = self.data.assign(incumbent_party="democrat")
        with self.assertRaises(DataFormatError):
            self.builder.prepare_model_data(ModelSpec("m", "vote ~ incumbent_party"), data)

    def test_too_few_observations_raises(self):
        with self.assertRaises(DataFormatError):
            self.builder.prepare_model_data(ModelSpec("m", "vote ~ past_vote * incumbent_party"),
                                            self.data.head(5))

    def test_lognormal_needs_positive_response(self):
        data = simulate_birthweight(n_obs=30, seed=0)
        data.loc[0, "weight"] = 0.0
        with self.assertRaises(DataFormatError):
            self.builder.prepare_model_data(ModelSpec("m", "weight ~ gestation", family="lognormal"), data)

    def test_bernoulli_response(self):
        data = simulate_birthweight(n_obs=60, seed=0)
        data["low_birthweight"] = data["weight"] < 2500
        spec = ModelSpec("m", "low_birthweight ~ gestation", family="bernoulli")

        model_data = self.builder.prepare_model_data(spec, data)
        self.assertEqual(model_data.y.dtype, np.int64)
        self.assertEqual(model_data.n_params, 2)

        bad = data.assign(low_birthweight=data["weight"] / 1000.0)
        with self.assertRaises(DataFormatError):
            self.builder.prepare_model_data(spec, bad)

    def test_build_model_variables(self):
        gaussian = self.builder.build_model(
            self.builder.prepare_model_data(ModelSpec("m", "vote ~ past_vote"), self.data))
        self.assertEqual({"beta", "sigma", "y_obs"}, {v.name for v in gaussian.free_RVs + gaussian.observed_RVs})

        data = simulate_birthweight(n_obs=60, seed=0)
        data["low_birthweight"] = data["weight"] < 2500
        bernoulli = self.builder.build_model(self.builder.prepare_model_data(
            ModelSpec("b", "low_birthweight ~ gestation", family="bernoulli"), data))
        self.assertNotIn("sigma", bernoulli.named_vars)

    def test_prior_scale_must_be_positive(self):
        with self.assertRaises(ModelBuildError):
            BayesianModelBuilder(prior_scale=0)


class TestSamplerAndDiagnostics(unittest.TestCase):
    """Tests for sampler settings and convergence assessment."""

    def test_sampler_from_config(self):
        sampler = BayesianSampler.from_config({"n_draws": 50, "n_chains": 3})
        self.assertEqual(sampler.total_draws, 150)

    def test_invalid_sampler_settings_raise(self):
        with self.assertRaises(SamplingError):
            BayesianSampler(n_draws=0)
        with self.assertRaises(SamplingError):
            BayesianSampler(n_chains=0)

    def test_converged_chains_give_no_warnings(self):
        diagnostics = BayesianDiagnostics(rhat_threshold=1.01, min_ess=400)
        issues = diagnostics.assess_convergence({"rhat_max": 1.001, "ess_bulk_min": 900.0, "n_divergent": 0})
        self.assertEqual(issues, [])

    def test_problems_become_warnings(self):
        diagnostics = BayesianDiagnostics(rhat_threshold=1.01, min_ess=400)
        with self.assertWarns(FitConvergenceWarning):
            issues = diagnostics.assess_convergence(
                {"rhat_max": 1.2, "ess_bulk_min": 35.0, "n_divergent": 4}, model_name="m")

        self.assertEqual(len(issues), 3)
        self.assertTrue(all(str(issue).startswith("m: ") for issue in issues))

    def test_single_chain_rhat_is_ignored(self):
        issues = BayesianDiagnostics().assess_convergence(
            {"rhat_max": float("nan"), "ess_bulk_min": 1000.0, "n_divergent": 0})
        self.assertEqual(issues, [])


class TestBayesianGLM(unittest.TestCase):
    """A small real fit exercising prediction and LOO estimation."""

    @classmethod
    def setUpClass(cls):
        cls.data = simulate_congress(n_obs=60, seed=4)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            cls.model = fit_model(ModelSpec("past_vote", "vote ~ past_vote"), cls.data,
                                  sampler_config=SMALL_SAMPLER, random_seed=11)
            cls.incumbent = fit_model(ModelSpec("past_vote_incumbent", "vote ~ past_vote + incumbent_party"),
                                      cls.data, sampler_config=SMALL_SAMPLER, random_seed=12)

    def test_unfitted_model_raises(self):
        model = BayesianGLM(ModelSpec("m", "vote ~ past_vote"), sampler_config=SMALL_SAMPLER)
        self.assertFalse(model.is_fitted)
        with self.assertRaises(ModelError):
            model.predict_samples()
        with self.assertRaises(ModelError):
            model.estimate_elpd()

    def test_predict_samples_shape_and_read_only(self):
        samples = self.model.predict_samples()

        self.assertEqual(samples.shape, (400, 60))
        self.assertFalse(samples.flags.writeable)
        self.assertIs(self.model.predict_samples(), samples)

    def test_predict_new_covariates_restores_fitting_data(self):
        before = self.model.predict_samples()
        new_rows = pd.DataFrame({"past_vote": [0.1, 0.5, 0.9]})

        samples = self.model.predict_samples(new_rows)

        self.assertEqual(samples.shape, (400, 3))
        self.assertFalse(samples.flags.writeable)
        # higher past vote predicts higher vote on average
        self.assertLess(samples[:, 0].mean(), samples[:, 2].mean())
        self.assertIs(self.model.predict_samples(), before)
        self.assertEqual(self.model.pymc_model["X"].get_value().shape, (60, 2))

    def test_estimate_elpd(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            estimate = self.model.estimate_elpd()

        self.assertTrue(np.isfinite(estimate.elpd))
        self.assertGreater(estimate.se, 0)
        self.assertEqual(estimate.n_obs, 60)
        self.assertAlmostEqual(float(np.sum(estimate.pointwise)), estimate.elpd, places=6)

    def test_summaries(self):
        summary = self.model.summarize()
        self.assertEqual(summary["n_obs"], 60)
        self.assertEqual(summary["n_draws"], 400)
        self.assertEqual(summary["random_seed"], 11)

        coefficients = self.model.coefficient_summary()
        self.assertIn("sigma", coefficients.index)
        self.assertEqual(sum(name.startswith("beta") for name in coefficients.index), 2)

    def _fresh_copy(self):
        clone = copy.copy(self.model)
        clone._elpd = None
        return clone

    def test_pareto_k_below_threshold_but_above_draw_limit_warns(self):
        # 400 draws: reliable k limit is about 0.62, below the 0.7 cap
        pareto_k = np.full(60, 0.1)
        pareto_k[[3, 17]] = [0.65, 0.68]
        loo = {"elpd_loo": -10.0, "se": 2.0, "p_loo": 2.1, "loo_i": np.full(60, -10.0 / 60),
               "pareto_k": pareto_k, "warning": False}

        with patch("model.bayesian_model.az.loo", return_value=loo):
            with self.assertWarns(EstimationWarning):
                estimate = self._fresh_copy().estimate_elpd()

        self.assertEqual(estimate.n_high_pareto_k, 2)
        self.assertEqual(len(estimate.warnings), 1)
        self.assertIsInstance(estimate.warnings[0], EstimationWarning)
        self.assertIn("400 draws", str(estimate.warnings[0]))

    def test_arviz_warning_flag_is_propagated(self):
        loo = {"elpd_loo": -10.0, "se": 2.0, "p_loo": 2.1, "loo_i": np.full(60, -10.0 / 60),
               "pareto_k": np.full(60, 0.1), "warning": True}

        with patch("model.bayesian_model.az.loo", return_value=loo):
            with self.assertWarns(EstimationWarning):
                estimate = self._fresh_copy().estimate_elpd()

        self.assertEqual(estimate.n_high_pareto_k, 0)
        self.assertEqual(len(estimate.warnings), 1)

    def test_compare_matches_arviz(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            table = compare({"past_vote": self.model, "past_vote_incumbent": self.incumbent})
            reference = az.compare({"past_vote": self.model.trace,
                                    "past_vote_incumbent": self.incumbent.trace}, ic="loo")

        self.assertEqual(table.models, list(reference.index))
        for row in table:
            self.assertAlmostEqual(row.elpd, reference.loc[row.model, "elpd_loo"], places=6)
            self.assertAlmostEqual(-row.elpd_diff, reference.loc[row.model, "elpd_diff"], places=6)
            self.assertAlmostEqual(row.se_diff, reference.loc[row.model, "dse"], places=6)


class TestReliableParetoK(unittest.TestCase):
    """Tests for the draw-dependent Pareto k limit."""

    def test_limit_depends_on_draws(self):
        self.assertAlmostEqual(reliable_k_limit(50), 1 - 1 / np.log10(50))
        self.assertAlmostEqual(reliable_k_limit(400), 1 - 1 / np.log10(400))
        self.assertEqual(reliable_k_limit(4000), 0.7)
        self.assertEqual(reliable_k_limit(4000, threshold=0.5), 0.5)
        self.assertEqual(reliable_k_limit(10), 0.0)

    def test_few_draws_flag_what_arviz_flags(self):
        data = simulate_congress(n_obs=40, seed=4)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            model = fit_model(ModelSpec("past_vote", "vote ~ past_vote"), data,
                              sampler_config=TINY_SAMPLER, random_seed=3)
            estimate = model.estimate_elpd()
            reference = az.loo(model.trace, pointwise=True)

        limit = reliable_k_limit(50)
        self.assertEqual(estimate.n_high_pareto_k, int(np.sum(np.asarray(reference["pareto_k"]) > limit)))
        if reference["warning"] or estimate.n_high_pareto_k:
            self.assertEqual(len(estimate.warnings), 1)
            self.assertIsInstance(estimate.warnings[0], EstimationWarning)
        else:
            self.assertEqual(estimate.warnings, [])


if __name__ == "__main__":
    unittest.main()
