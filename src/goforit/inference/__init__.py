"""
Bayesian inference for binary-choice logistic regression.

This module provides the PyMC-based inference pipeline:
1. PriorSpec: Normal priors per coefficient, with autoscaling
2. ModelBuilder: Assemble the PyMC logistic regression
3. NUTSSampler: Independent NUTS chains with per-chain failure handling
4. DiagnosticsComputer: Split r-hat, ESS, separation and collinearity checks

**Usage:**
```python
from goforit.config import SamplerConfig
from goforit.inference import DiagnosticsComputer, NUTSSampler, PriorSpec

# 1. Resolve priors against the design matrix
priors = PriorSpec().resolve(design)

# 2. Sample with NUTS
run = NUTSSampler().sample(design, priors, SamplerConfig(chains=4, seed=42))

# 3. Check convergence diagnostics
report = DiagnosticsComputer.report(
    run.draws.by_chain(), run.draws.coefficient_names, n_chains=run.n_chains
)
report.raise_if_unconverged()
```

**Key Classes:**
- NormalPrior / PriorSpec / ResolvedPriors: Prior specification
- ModelBuilder: PyMC model assembly
- NUTSSampler: NUTS sampling orchestration
- ChainResult / ChainStatus: Per-chain lifecycle
- InferenceSummary: Sampling results
- DiagnosticsComputer / DiagnosticsReport: Convergence diagnostics
"""

from goforit.inference.diagnostics import DiagnosticsComputer, DiagnosticsReport
from goforit.inference.model_builder import ModelBuilder
from goforit.inference.priors import NormalPrior, PriorSpec, ResolvedPriors
from goforit.inference.sampler import (
    ChainResult,
    ChainStatus,
    InferenceSummary,
    NUTSSampler,
)

__all__ = [
    "ChainResult",
    "ChainStatus",
    "DiagnosticsComputer",
    "DiagnosticsReport",
    "InferenceSummary",
    "ModelBuilder",
    "NUTSSampler",
    "NormalPrior",
    "PriorSpec",
    "ResolvedPriors",
]
