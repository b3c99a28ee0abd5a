"""
goforit: Bayesian logistic regression for binary-choice decisions.

Estimates the probability that an actor picks one of two actions (go for it
or not, run or pass) from categorical and continuous covariates, with PyMC
NUTS sampling, convergence diagnostics, posterior summaries and cross-fit
comparison.

**Usage:**
```python
from goforit import (
    BayesianLogisticRegression, NormalPrior, OutcomeSpec, PriorSpec,
    SamplerConfig, TermSpec,
)

model = BayesianLogisticRegression(
    terms=[
        TermSpec.categorical("down", levels=[1, 2, 3, 4]),
        TermSpec.continuous("ydstogo"),
    ],
    outcome=OutcomeSpec("play_type", levels=("run", "pass")),
    priors=PriorSpec(default=NormalPrior(0.0, 2.5, autoscale=True)),
    config=SamplerConfig(chains=4, iterations=2000, seed=42),
)
fit = model.fit(plays)
fit.diagnostics.converged
fit.summarize().to_frame(decimals=2)
```
"""

from goforit.config import SamplerConfig, load_options
from goforit.design import DesignMatrix, DesignMatrixBuilder, OutcomeSpec, TermSpec
from goforit.exceptions import (
    AllChainsFailedError,
    ConvergenceError,
    ConvergenceWarning,
    DimensionMismatchError,
    GoForItError,
    PriorShapeError,
    SchemaError,
)
from goforit.inference import (
    ChainStatus,
    DiagnosticsComputer,
    DiagnosticsReport,
    NormalPrior,
    NUTSSampler,
    PriorSpec,
)
from goforit.model import BayesianLogisticRegression, FitResult
from goforit.posterior import (
    ComparisonSet,
    PosteriorComparator,
    PosteriorDrawSet,
    PosteriorSummarizer,
    PosteriorSummary,
)

__version__ = "0.1.0"

__all__ = [
    "AllChainsFailedError",
    "BayesianLogisticRegression",
    "ChainStatus",
    "ComparisonSet",
    "ConvergenceError",
    "ConvergenceWarning",
    "DesignMatrix",
    "DesignMatrixBuilder",
    "DiagnosticsComputer",
    "DiagnosticsReport",
    "DimensionMismatchError",
    "FitResult",
    "GoForItError",
    "NUTSSampler",
    "NormalPrior",
    "OutcomeSpec",
    "PosteriorComparator",
    "PosteriorDrawSet",
    "PosteriorSummarizer",
    "PosteriorSummary",
    "PriorSpec",
    "SamplerConfig",
    "SchemaError",
    "TermSpec",
    "load_options",
]
