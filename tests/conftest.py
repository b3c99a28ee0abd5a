# tests/conftest.py
import warnings

import numpy as np
import pandas as pd
import pytest

from goforit import (
    BayesianLogisticRegression,
    NormalPrior,
    OutcomeSpec,
    PriorSpec,
    SamplerConfig,
    TermSpec,
)
from goforit.simulation import ChoiceSimulator


@pytest.fixture
def down_distance_terms():
    return [
        TermSpec.categorical("down", levels=[1, 2, 3, 4]),
        TermSpec.continuous("ydstogo"),
    ]


@pytest.fixture
def go_outcome():
    return OutcomeSpec("decision", levels=("kick", "go"))


@pytest.fixture
def plays_small():
    # 8 plays, every down represented, extra grouping columns ignored by the core
    return pd.DataFrame({
        "team": ["KC", "KC", "BUF", "BUF", "DET", "DET", "PHI", "PHI"],
        "week": [1, 2, 1, 2, 1, 2, 1, 2],
        "down": [1, 2, 3, 4, 4, 3, 2, 1],
        "ydstogo": [10.0, 7.0, 3.0, 1.0, 2.0, 8.0, 5.0, 10.0],
        "decision": ["kick", "kick", "go", "go", "kick", "go", "kick", "go"],
    })


@pytest.fixture
def fast_config():
    """Short runs that still give diagnostics something to chew on."""
    return SamplerConfig(chains=2, iterations=600, warmup=300, seed=2024, min_ess=100)


@pytest.fixture(scope="session")
def distance_simulator():
    return ChoiceSimulator(
        terms=[TermSpec.continuous("ydstogo")],
        outcome=OutcomeSpec("decision", levels=("kick", "go")),
        coefficients=[0.0, 0.05],
        continuous_ranges={"ydstogo": (0.0, 40.0)},
    )


@pytest.fixture(scope="session")
def distance_plays(distance_simulator):
    return distance_simulator.simulate(n_obs=1000, random_seed=7)


@pytest.fixture(scope="session")
def weak_distance_fit(distance_plays):
    """Real NUTS fit shared by the end-to-end tests (kept small)."""
    model = BayesianLogisticRegression(
        terms=[TermSpec.continuous("ydstogo")],
        outcome=OutcomeSpec("decision", levels=("kick", "go")),
        priors=PriorSpec(
            intercept=NormalPrior(0.0, 2.5),
            default=NormalPrior(0.0, 2.5),
        ),
        config=SamplerConfig(chains=2, iterations=1000, warmup=500, seed=11, min_ess=100),
    )
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return model.fit(distance_plays)


@pytest.fixture
def fake_idata_factory():
    """Build the InferenceData a single-chain ``pm.sample`` call would return."""
    import arviz as az

    def make(draws, diverging=None):
        draws = np.asarray(draws, dtype=float)
        if diverging is None:
            diverging = np.zeros(draws.shape[0], dtype=bool)
        return az.from_dict(
            posterior={"beta": draws[np.newaxis, ...]},
            sample_stats={"diverging": np.asarray(diverging, dtype=bool)[np.newaxis, ...]},
        )

    return make
