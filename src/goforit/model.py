"""
Bayesian logistic regression for binary-choice decisions.

Fit order:
    observation table → DesignMatrixBuilder      (SchemaError)
                      → PriorSpec.resolve        (PriorShapeError)
                      → data checks              (separation, collinearity)
                      → NUTSSampler              (AllChainsFailedError)
                      → DiagnosticsComputer      (ConvergenceWarning)

Structural errors are raised before any sampling starts. Every FitResult
carries its diagnostics report, converged or not.
"""

import logging
import warnings
from typing import Optional, Sequence

import arviz as az
import pandas as pd

from goforit.config import SamplerConfig
from goforit.design.matrix import DesignMatrix, DesignMatrixBuilder, OutcomeSpec, TermSpec
from goforit.exceptions import ConvergenceWarning
from goforit.inference.diagnostics import DiagnosticsComputer, DiagnosticsReport
from goforit.inference.priors import PriorSpec, ResolvedPriors
from goforit.inference.sampler import ChainResult, InferenceSummary, NUTSSampler
from goforit.posterior.draws import PosteriorDrawSet
from goforit.posterior.predictive import choice_probabilities, summarize_probabilities
from goforit.posterior.summary import PosteriorSummarizer, PosteriorSummary

logger = logging.getLogger(__name__)


class FitResult:
    """
    Outcome of one model fit.

    Attributes
    ----------
    design : DesignMatrix
    priors : ResolvedPriors
    draws : PosteriorDrawSet
        Kept draws of the completed chains.
    chains : list of ChainResult
        Every chain, failed ones included.
    diagnostics : DiagnosticsReport
    config : SamplerConfig
    sampling_time : float
    """

    def __init__(
        self,
        builder: DesignMatrixBuilder,
        design: DesignMatrix,
        priors: ResolvedPriors,
        inference: InferenceSummary,
        diagnostics: DiagnosticsReport,
        config: SamplerConfig,
    ) -> None:
        self._builder = builder
        self.design = design
        self.priors = priors
        self.draws: PosteriorDrawSet = inference.draws
        self.chains: Sequence[ChainResult] = inference.chains
        self.diagnostics = diagnostics
        self.config = config
        self.sampling_time = inference.sampling_time

    @property
    def converged(self) -> bool:
        return self.diagnostics.converged

    def summarize(
        self,
        confidence_level: Optional[float] = None,
        require_converged: bool = False,
    ) -> PosteriorSummary:
        """
        Posterior summary of every coefficient.

        Parameters
        ----------
        confidence_level : float, optional
            Defaults to ``config.confidence_level``.
        require_converged : bool
            Raise ConvergenceError instead of summarizing an unconverged fit.
        """
        if require_converged:
            self.diagnostics.raise_if_unconverged()
        level = confidence_level if confidence_level is not None else self.config.confidence_level
        return PosteriorSummarizer(level).summarize(self.draws)

    def predict_proba(
        self,
        table: pd.DataFrame,
        confidence_level: Optional[float] = None,
    ) -> pd.DataFrame:
        """
        Probability of the second outcome level for new observations.

        Returns a frame indexed like ``table`` with the posterior mean
        ``probability`` and its credible interval.
        """
        X = self._builder.transform(table)
        level = confidence_level if confidence_level is not None else self.config.confidence_level
        return summarize_probabilities(
            choice_probabilities(self.draws, X), level, index=table.index
        )

    def to_inference_data(self) -> az.InferenceData:
        return self.draws.to_inference_data()

    def __repr__(self) -> str:
        return (
            f"FitResult(n_obs={self.design.n_obs}, draws={self.draws.n_draws}, "
            f"converged={self.converged}, time={self.sampling_time:.1f}s)"
        )


class BayesianLogisticRegression:
    """
    Bayesian logistic regression of a binary choice on categorical and
    continuous covariates.

    Parameters
    ----------
    terms : sequence of TermSpec
        Covariates in column order.
    outcome : OutcomeSpec
        Outcome column; ``levels[1]`` is the modelled choice.
    priors : PriorSpec, optional
        Defaults to Normal(0, 2.5) on the intercept and autoscaled
        Normal(0, 2.5) on every slope.
    config : SamplerConfig, optional
    sampler : NUTSSampler, optional
    """

    def __init__(
        self,
        terms: Sequence[TermSpec],
        outcome: OutcomeSpec,
        priors: Optional[PriorSpec] = None,
        config: Optional[SamplerConfig] = None,
        sampler: Optional[NUTSSampler] = None,
    ) -> None:
        self.builder = DesignMatrixBuilder(terms, outcome)
        self.priors = priors or PriorSpec()
        self.config = config or SamplerConfig()
        self.sampler = sampler or NUTSSampler()

    def fit(
        self,
        table: pd.DataFrame,
        initvals: Optional[Sequence[Sequence[float]]] = None,
    ) -> FitResult:
        """
        Fit the model to an observation table.

        Raises
        ------
        SchemaError
            If the table does not match the declared terms.
        PriorShapeError
            If prior overrides do not cover every slope.
        AllChainsFailedError
            If no chain completed.
        """
        design = self.builder.build(table)
        resolved = self.priors.resolve(design)
        data_problems = DiagnosticsComputer.data_problems(design.X, design.y, design.column_names)
        for problem in data_problems:
            logger.warning(f"Data problem: {problem}")

        inference = self.sampler.sample(design, resolved, self.config, initvals=initvals)

        diagnostics = DiagnosticsComputer.report(
            inference.draws.by_chain(),
            design.column_names,
            n_chains=inference.n_chains,
            failed_chains=inference.failed_chains,
            divergences=inference.divergences,
            data_problems=data_problems,
            rhat_threshold=self.config.rhat_threshold,
            min_ess=self.config.min_ess,
        )
        if not diagnostics.converged:
            message = "Posterior may be unreliable: " + "; ".join(diagnostics.problems)
            logger.warning(message)
            warnings.warn(message, ConvergenceWarning, stacklevel=2)

        return FitResult(self.builder, design, resolved, inference, diagnostics, self.config)

    def __repr__(self) -> str:
        return (
            f"BayesianLogisticRegression(terms={[t.name for t in self.builder.terms]}, "
            f"outcome='{self.builder.outcome.name}', config={self.config})"
        )
