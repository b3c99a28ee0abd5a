"""
End-to-end tests for BayesianLogisticRegression.

Real NUTS runs on synthetic plays with known coefficients. The repeated-trial
coverage study is marked slow and deselected by default (run with
``pytest -m slow``).
"""

import logging
import warnings

import numpy as np
import pandas as pd
import pymc as pm
import pytest

from goforit import (
    BayesianLogisticRegression,
    ConvergenceError,
    ConvergenceWarning,
    NormalPrior,
    OutcomeSpec,
    PosteriorComparator,
    PriorSpec,
    SamplerConfig,
    SchemaError,
    TermSpec,
    load_options,
)
from goforit.exceptions import PriorShapeError
from goforit.inference import NUTSSampler
from goforit.simulation import ChoiceSimulator

DISTANCE = [TermSpec.continuous("ydstogo")]
DECISION = OutcomeSpec("decision", levels=("kick", "go"))


@pytest.fixture
def no_sampling(monkeypatch):
    """Fail loudly if anything reaches the sampler."""
    calls = []

    def forbidden(*args, **kwargs):
        calls.append(kwargs)
        raise AssertionError("sampling should not have started")

    monkeypatch.setattr(pm, "sample", forbidden)
    monkeypatch.setattr(NUTSSampler, "sample", forbidden)
    return calls


class TestDistanceRecovery:
    """Recovery of a known distance effect from 1000 synthetic plays."""

    def test_slope_recovered(self, weak_distance_fit) -> None:
        row = weak_distance_fit.summarize()["ydstogo"]
        assert abs(row["estimate"] - 0.05) <= 0.02
        assert row["lower"] <= row["estimate"] <= row["upper"]

    def test_wide_interval_contains_truth(self, weak_distance_fit) -> None:
        row = weak_distance_fit.summarize(confidence_level=0.999)["ydstogo"]
        assert row["lower"] <= 0.05 <= row["upper"]

    def test_chains_mix(self, weak_distance_fit) -> None:
        assert weak_distance_fit.draws.n_chains == 2
        assert weak_distance_fit.draws.n_draws == 2 * 500
        assert max(weak_distance_fit.diagnostics.rhat) <= 1.05
        assert weak_distance_fit.diagnostics.failed_chains == ()

    def test_predict_proba(self, weak_distance_fit) -> None:
        new_plays = pd.DataFrame({"ydstogo": [1.0, 20.0, 39.0]}, index=["short", "medium", "long"])
        predictions = weak_distance_fit.predict_proba(new_plays)
        assert list(predictions.index) == ["short", "medium", "long"]
        assert list(predictions.columns) == ["probability", "lower", "upper"]
        assert predictions["probability"].is_monotonic_increasing
        truth = 1.0 / (1.0 + np.exp(-0.05 * new_plays["ydstogo"]))
        assert np.all(np.abs(predictions["probability"] - truth) < 0.08)
        assert (predictions["lower"] <= predictions["probability"]).all()

    def test_to_inference_data(self, weak_distance_fit) -> None:
        idata = weak_distance_fit.to_inference_data()
        assert idata.posterior["beta"].shape == (2, 500, 2)


class TestConvergenceFromTruth:
    """Chains started at the generating coefficients agree with each other."""

    def test_rhat_near_one(self, distance_plays) -> None:
        rng = np.random.default_rng(0)
        initvals = [[0.0, 0.05] + rng.normal(0, [0.05, 0.002]) for _ in range(4)]
        model = BayesianLogisticRegression(
            DISTANCE,
            DECISION,
            priors=PriorSpec(intercept=NormalPrior(0.0, 2.5), default=NormalPrior(0.0, 2.5)),
            config=SamplerConfig(chains=4, iterations=800, warmup=400, seed=31, min_ess=100),
        )
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            fit = model.fit(distance_plays, initvals=initvals)
        assert all(rhat <= 1.05 for rhat in fit.diagnostics.rhat)
        assert [c.initial_point for c in fit.chains] == [tuple(v.tolist()) for v in initvals]


class TestSeparation:
    """Outcome fully determined by the sign of one covariate."""

    @pytest.fixture
    def separated_plays(self):
        rng = np.random.default_rng(3)
        score_diff = rng.uniform(-14.0, 14.0, size=80)
        return pd.DataFrame({
            "score_diff": score_diff,
            "decision": np.where(score_diff < 0, "go", "kick"),
        })

    def test_separation_warns_and_is_unconverged(self, separated_plays, caplog) -> None:
        model = BayesianLogisticRegression(
            [TermSpec.continuous("score_diff")],
            DECISION,
            config=SamplerConfig(
                chains=2, iterations=400, warmup=200, seed=5, max_divergence_rate=1.0
            ),
        )
        with caplog.at_level(logging.WARNING, logger="goforit"):
            with pytest.warns(ConvergenceWarning, match="separates"):
                fit = model.fit(separated_plays)

        assert not fit.converged
        assert any("'score_diff' completely separates" in p for p in fit.diagnostics.data_problems)
        assert "Data problem" in caplog.text
        with pytest.raises(ConvergenceError, match="separates"):
            fit.summarize(require_converged=True)
        # still available for inspection when not required
        assert fit.summarize()["score_diff"]["estimate"] < 0


class TestValidationBeforeSampling:
    """Structural errors are raised before any sampling iteration."""

    def test_prior_override_count(self, distance_plays, no_sampling) -> None:
        terms = [TermSpec.categorical("down", levels=[1, 2, 3, 4]), TermSpec.continuous("ydstogo")]
        plays = distance_plays.assign(down=np.resize([1, 2, 3, 4], len(distance_plays)))
        config, priors = load_options({"chains": 2, "prior_overrides": [(0.0, 1.0), (0.0, 1.0)]})

        with pytest.raises(PriorShapeError, match="Got 2 prior overrides for 4"):
            BayesianLogisticRegression(terms, DECISION, priors=priors, config=config).fit(plays)
        assert no_sampling == []

    def test_schema_error(self, distance_plays, no_sampling) -> None:
        model = BayesianLogisticRegression([TermSpec.continuous("yardline")], DECISION)
        with pytest.raises(SchemaError, match="yardline"):
            model.fit(distance_plays)
        assert no_sampling == []


class TestPriorComparison:
    """Informative priors derived from an earlier fit, compared with the weak fit."""

    def test_combine_fits(self, weak_distance_fit, distance_plays) -> None:
        informative = PriorSpec.from_summary(weak_distance_fit.summarize())
        model = BayesianLogisticRegression(
            DISTANCE,
            DECISION,
            priors=informative,
            config=SamplerConfig(chains=2, iterations=600, warmup=300, seed=12, min_ess=100),
        )
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            informed_fit = model.fit(distance_plays.iloc[:200])

        comparison = PosteriorComparator().combine_fits(
            {"weakly informative": weak_distance_fit, "informative": informed_fit}
        )
        assert len(comparison) == weak_distance_fit.draws.n_draws + informed_fit.draws.n_draws
        assert comparison.labels == ("weakly informative", "informative")
        assert abs(informed_fit.summarize()["ydstogo"]["estimate"] - 0.05) < 0.03


@pytest.mark.slow
def test_interval_coverage_over_repeated_trials(distance_simulator) -> None:
    """95% intervals contain the true distance effect in >= 94 of 100 trials."""
    model = BayesianLogisticRegression(
        DISTANCE,
        DECISION,
        priors=PriorSpec(intercept=NormalPrior(0.0, 2.5), default=NormalPrior(0.0, 2.5)),
        config=SamplerConfig(chains=2, iterations=1000, warmup=500, min_ess=100),
    )
    covered = 0
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        for trial in range(100):
            plays = distance_simulator.simulate(n_obs=1000, random_seed=1000 + trial)
            row = model.fit(plays).summarize(confidence_level=0.95)["ydstogo"]
            covered += int(row["lower"] <= 0.05 <= row["upper"])
    assert covered >= 94


class TestModelInit:
    def test_defaults(self) -> None:
        model = BayesianLogisticRegression(DISTANCE, DECISION)
        assert model.config == SamplerConfig()
        assert model.priors.default.autoscale
        assert "ydstogo" in repr(model)

    def test_simulator_shares_schema(self) -> None:
        simulator = ChoiceSimulator(DISTANCE, DECISION, coefficients=[0.0, 0.05])
        model = BayesianLogisticRegression(DISTANCE, DECISION)
        assert simulator.builder.column_names == model.builder.column_names
