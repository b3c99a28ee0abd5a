"""
Posterior summaries: point estimates, standard errors and credible intervals.

For a credible mass c the interval is the pair of empirical quantiles
((1 - c) / 2, 1 - (1 - c) / 2). Quantiles use the "linear" (type 7) rule and
are computed at full precision; rounding only happens in ``to_frame``.
"""

from typing import Optional

import numpy as np
import pandas as pd

from goforit.posterior.draws import PosteriorDrawSet

SUMMARY_COLUMNS = ["estimate", "std_error", "lower", "upper"]


class PosteriorSummary:
    """
    One row per coefficient with ``estimate`` (posterior mean),
    ``std_error`` (posterior standard deviation) and the ``lower``/``upper``
    credible interval bounds.
    """

    def __init__(self, table: pd.DataFrame, confidence_level: float, n_draws: int) -> None:
        self.table = table
        self.confidence_level = confidence_level
        self.n_draws = n_draws

    @property
    def coefficient_names(self):
        return tuple(self.table.index)

    def __getitem__(self, name: str) -> pd.Series:
        return self.table.loc[name]

    def to_frame(self, decimals: Optional[int] = None) -> pd.DataFrame:
        frame = self.table.copy()
        if decimals is not None:
            frame = frame.round(decimals)
        return frame

    def __repr__(self) -> str:
        return (
            f"PosteriorSummary(confidence_level={self.confidence_level}, "
            f"n_draws={self.n_draws})\n{self.table.to_string()}"
        )


class PosteriorSummarizer:
    """
    Reduce posterior draws to per-coefficient summaries.

    Parameters
    ----------
    confidence_level : float
        Credible interval mass in (0, 1). Default 0.95.
    """

    def __init__(self, confidence_level: float = 0.95) -> None:
        if not (0.0 < confidence_level < 1.0):
            raise ValueError(f"confidence_level must be in (0, 1). Got {confidence_level}")
        self.confidence_level = confidence_level

    @property
    def quantiles(self):
        tail = (1.0 - self.confidence_level) / 2.0
        return tail, 1.0 - tail

    def summarize(self, draws: PosteriorDrawSet) -> PosteriorSummary:
        """
        Summarize every coefficient of a draw set.

        The interval is widened to include the posterior mean when the
        distribution is so skewed that a narrow central interval would miss
        it, so ``lower <= estimate <= upper`` always holds.
        """
        if draws.n_draws == 0:
            raise ValueError("Cannot summarize an empty draw set")

        values = draws.values
        estimate = values.mean(axis=0)
        std_error = values.std(axis=0, ddof=1) if draws.n_draws > 1 else np.zeros(draws.n_coefficients)
        lower, upper = np.quantile(values, self.quantiles, axis=0)

        table = pd.DataFrame(
            {
                "estimate": estimate,
                "std_error": std_error,
                "lower": np.minimum(lower, estimate),
                "upper": np.maximum(upper, estimate),
            },
            index=pd.Index(draws.coefficient_names, name="coefficient"),
        )
        return PosteriorSummary(table, self.confidence_level, draws.n_draws)

    def __repr__(self) -> str:
        return f"PosteriorSummarizer(confidence_level={self.confidence_level})"
