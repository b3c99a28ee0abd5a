"""
Choice probabilities and posterior predictive checks.

For every posterior draw β^(s) and covariate row x_i:
    p_i^(s) = logit⁻¹(x_i · β^(s))
"""

from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy.special import expit

from goforit.posterior.draws import PosteriorDrawSet


def choice_probabilities(draws: PosteriorDrawSet, X: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Probability of choosing the second outcome level for every draw and row.

    Parameters
    ----------
    draws : PosteriorDrawSet
    X : NDArray[np.float64]
        Covariate rows encoded with the fit's design schema, shape (n_rows, n_coefficients).

    Returns
    -------
    NDArray[np.float64]
        Shape (n_draws, n_rows).
    """
    X = np.asarray(X, dtype=np.float64)
    if X.ndim != 2 or X.shape[1] != draws.n_coefficients:
        raise ValueError(
            f"X must have shape (n_rows, {draws.n_coefficients}). Got {X.shape}"
        )
    return expit(draws.values @ X.T)


def summarize_probabilities(
    probabilities: NDArray[np.float64],
    confidence_level: float = 0.95,
    index: Optional[pd.Index] = None,
) -> pd.DataFrame:
    """Posterior mean and credible interval of each row's choice probability."""
    if not (0.0 < confidence_level < 1.0):
        raise ValueError(f"confidence_level must be in (0, 1). Got {confidence_level}")
    tail = (1.0 - confidence_level) / 2.0
    mean = probabilities.mean(axis=0)
    lower, upper = np.quantile(probabilities, [tail, 1.0 - tail], axis=0)
    return pd.DataFrame(
        {
            "probability": mean,
            "lower": np.minimum(lower, mean),
            "upper": np.maximum(upper, mean),
        },
        index=index,
    )


class PosteriorPredictiveCheck:
    """
    Posterior predictive checks for model validation.

    Replicates the observed choices from the posterior and compares the
    replicated choice rates with the observed ones.
    """

    @staticmethod
    def replicate(
        draws: PosteriorDrawSet,
        X: NDArray[np.float64],
        random_seed: Optional[int] = None,
    ) -> NDArray[np.int8]:
        """Replicated choices, shape (n_draws, n_rows)."""
        rng = np.random.default_rng(random_seed)
        p = choice_probabilities(draws, X)
        return (rng.random(p.shape) < p).astype(np.int8)

    @staticmethod
    def compute_ppcheck(
        draws: PosteriorDrawSet,
        X: NDArray[np.float64],
        y: NDArray[np.int8],
        groups: Optional[Sequence[str]] = None,
        random_seed: Optional[int] = None,
    ) -> Dict[str, float]:
        """
        Compute posterior predictive p-values.

        Parameters
        ----------
        draws : PosteriorDrawSet
        X : NDArray[np.float64]
            Design matrix of the observed data.
        y : NDArray[np.int8]
            Observed choices in {0, 1}.
        groups : sequence of str, optional
            Indicator column names (e.g. ``"down[4]"``) whose choice rate is
            checked separately.
        random_seed : int, optional

        Returns
        -------
        ppc_stats : Dict[str, float]
            ``rate_pvalue`` for the overall choice rate and
            ``rate_pvalue[<column>]`` for every requested group. Values near
            0 or 1 indicate misfit; ~0.5 is ideal.
        """
        y = np.asarray(y, dtype=np.float64)
        replicated = PosteriorPredictiveCheck.replicate(draws, X, random_seed)

        stats = {"rate_pvalue": float(np.mean(replicated.mean(axis=1) >= y.mean()))}

        for name in groups or ():
            mask = np.asarray(X)[:, draws.coefficient_names.index(name)] == 1
            if not mask.any():
                continue
            observed = y[mask].mean()
            stats[f"rate_pvalue[{name}]"] = float(
                np.mean(replicated[:, mask].mean(axis=1) >= observed)
            )

        return stats
