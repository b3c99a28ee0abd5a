"""
Synthetic binary-choice data from a known logistic model.

Generates observation tables whose true coefficients are known, for
recovery checks and examples:

    c_i ~ Categorical(levels, weights)      # categorical covariates
    x_i ~ Uniform(low, high)                # continuous covariates
    y_i ~ Bernoulli(logit⁻¹(X_i · β))       # choice
"""

from typing import Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.special import expit

from goforit.design.matrix import CATEGORICAL, DesignMatrixBuilder, OutcomeSpec, TermSpec


class ChoiceSimulator:
    """
    Simulator of binary-choice observations.

    Attributes
    ----------
    builder : DesignMatrixBuilder
        Schema shared with the model that will be fitted.
    coefficients : NDArray[np.float64]
        True coefficients in design column order, intercept first.
    continuous_ranges : Dict[str, Tuple[float, float]]
        Uniform sampling range of every continuous covariate.
    level_weights : Dict[str, NDArray[np.float64]]
        Sampling probabilities of categorical levels.
    """

    def __init__(
        self,
        terms: Sequence[TermSpec],
        outcome: OutcomeSpec,
        coefficients: Sequence[float],
        continuous_ranges: Optional[Mapping[str, Tuple[float, float]]] = None,
        level_weights: Optional[Mapping[str, Sequence[float]]] = None,
    ) -> None:
        """
        Initialize simulator.

        Parameters
        ----------
        terms : sequence of TermSpec
            Covariates, as for the model.
        outcome : OutcomeSpec
            Outcome column and levels.
        coefficients : sequence of float
            True coefficients, one per design column (intercept first).
        continuous_ranges : mapping, optional
            ``{name: (low, high)}``. Default (0, 10) for every continuous term.
        level_weights : mapping, optional
            ``{name: weights}`` per categorical term. Default uniform.
        """
        self.builder = DesignMatrixBuilder(terms, outcome)
        self.coefficients = np.asarray(coefficients, dtype=np.float64)

        n_columns = len(self.builder.column_names)
        if self.coefficients.shape != (n_columns,):
            raise ValueError(
                f"coefficients must have length {n_columns} "
                f"({self.builder.column_names}). Got {self.coefficients.shape}"
            )

        continuous_ranges = dict(continuous_ranges or {})
        level_weights = dict(level_weights or {})
        self.continuous_ranges: Dict[str, Tuple[float, float]] = {}
        self.level_weights: Dict[str, NDArray[np.float64]] = {}

        for term in self.builder.terms:
            if term.kind == CATEGORICAL:
                weights = np.asarray(
                    level_weights.get(term.name, np.ones(len(term.levels))), dtype=np.float64
                )
                if weights.shape != (len(term.levels),) or np.any(weights < 0) or weights.sum() <= 0:
                    raise ValueError(f"Invalid level weights for '{term.name}': {weights}")
                self.level_weights[term.name] = weights / weights.sum()
            else:
                low, high = continuous_ranges.get(term.name, (0.0, 10.0))
                if not low < high:
                    raise ValueError(f"Range of '{term.name}' must satisfy low < high. Got ({low}, {high})")
                self.continuous_ranges[term.name] = (float(low), float(high))

    def simulate(self, n_obs: int, random_seed: Optional[int] = None) -> pd.DataFrame:
        """
        Draw an observation table.

        Parameters
        ----------
        n_obs : int
            Number of observations.
        random_seed : int, optional
            Random seed for reproducibility.

        Returns
        -------
        table : pd.DataFrame
            One column per term plus the outcome column.
        """
        if n_obs <= 0:
            raise ValueError(f"n_obs must be positive. Got {n_obs}")

        rng = np.random.default_rng(random_seed)
        table = pd.DataFrame(index=pd.RangeIndex(n_obs))
        for term in self.builder.terms:
            if term.kind == CATEGORICAL:
                picks = rng.choice(len(term.levels), size=n_obs, p=self.level_weights[term.name])
                table[term.name] = [term.levels[i] for i in picks]
            else:
                low, high = self.continuous_ranges[term.name]
                table[term.name] = rng.uniform(low, high, size=n_obs)

        p = self.probabilities(table)
        chosen = rng.random(n_obs) < p
        negative, positive = self.builder.outcome.levels
        table[self.builder.outcome.name] = np.where(chosen, positive, negative)
        return table

    def probabilities(self, table: pd.DataFrame) -> NDArray[np.float64]:
        """True probability of the second outcome level for every row."""
        return expit(self.builder.transform(table) @ self.coefficients)

    def __repr__(self) -> str:
        return (
            f"ChoiceSimulator(columns={self.builder.column_names}, "
            f"coefficients={self.coefficients.tolist()})"
        )
