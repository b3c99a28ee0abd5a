"""
Prior specification for logistic regression coefficients.

Every coefficient gets an independent Normal prior:

    β_0 ~ Normal(μ_0, σ_0)                      # intercept
    β_j ~ Normal(μ_j, σ_j / s_j)   if autoscale  # s_j = sd of column j
    β_j ~ Normal(μ_j, σ_j)         otherwise

Autoscaling keeps a weakly-informative prior weak whatever the units of the
covariate (yards, seconds, indicator columns). Priors are given either as one
default broadcast to all slopes or as an explicit per-slope list.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from goforit.design.matrix import INTERCEPT
from goforit.exceptions import PriorShapeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalPrior:
    """
    Normal prior on one coefficient.

    Attributes
    ----------
    mean : float
        Prior location. Default 0.0.
    scale : float
        Prior standard deviation (before autoscaling). Default 2.5.
    autoscale : bool
        Divide ``scale`` by the empirical standard deviation of the
        coefficient's design column. Default False.
    """

    mean: float = 0.0
    scale: float = 2.5
    autoscale: bool = False

    def __post_init__(self) -> None:
        if not np.isfinite(self.mean):
            raise ValueError(f"Prior mean must be finite. Got {self.mean}")
        if not (np.isfinite(self.scale) and self.scale > 0):
            raise ValueError(f"Prior scale must be positive and finite. Got {self.scale}")


@dataclass(frozen=True)
class ResolvedPriors:
    """Per-coefficient prior means and (already autoscaled) standard deviations."""

    means: Tuple[float, ...]
    scales: Tuple[float, ...]
    column_names: Tuple[str, ...]

    @property
    def n_coefficients(self) -> int:
        return len(self.means)

    def as_arrays(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        return np.asarray(self.means, dtype=np.float64), np.asarray(self.scales, dtype=np.float64)


class PriorSpec:
    """
    Priors for the intercept and the slopes of a design matrix.

    Parameters
    ----------
    intercept : NormalPrior, optional
        Prior for the intercept. Default Normal(0, 2.5).
    default : NormalPrior, optional
        Prior broadcast to every slope when ``overrides`` is not given.
        Default Normal(0, 2.5, autoscale=True).
    overrides : sequence of NormalPrior, optional
        One prior per slope, in design column order. Its length must equal
        the number of non-intercept columns.
    override_names : sequence of str, optional
        Coefficient name of each override. When given, overrides are matched
        to design columns by name instead of by position.
    """

    def __init__(
        self,
        intercept: Optional[NormalPrior] = None,
        default: Optional[NormalPrior] = None,
        overrides: Optional[Sequence[NormalPrior]] = None,
        override_names: Optional[Sequence[str]] = None,
    ) -> None:
        self.intercept = intercept or NormalPrior(0.0, 2.5)
        self.default = default or NormalPrior(0.0, 2.5, autoscale=True)
        self.overrides = tuple(overrides) if overrides is not None else None
        self.override_names = tuple(override_names) if override_names is not None else None
        if self.override_names is not None and (
            self.overrides is None or len(self.override_names) != len(self.overrides)
        ):
            raise PriorShapeError(
                f"Got {len(self.override_names)} override names for "
                f"{0 if self.overrides is None else len(self.overrides)} prior overrides"
            )

    @classmethod
    def from_summary(
        cls,
        summary,
        scale_multiplier: float = 1.0,
        min_scale: float = 1e-3,
    ) -> "PriorSpec":
        """
        Derive informative priors from the posterior summary of an earlier fit.

        Each coefficient's prior is centered on the earlier posterior mean with
        the earlier posterior standard deviation (times ``scale_multiplier``)
        as its scale. Autoscaling is off since the scales are already on the
        coefficient's own units.

        Parameters
        ----------
        summary : PosteriorSummary
            Summary of the historical fit. Its coefficient names are kept, so
            the current model may declare its terms in a different order.
        scale_multiplier : float
            Widening factor for the historical uncertainty. Default 1.0.
        min_scale : float
            Floor on the derived scale. Default 1e-3.
        """
        if scale_multiplier <= 0:
            raise ValueError(f"scale_multiplier must be positive. Got {scale_multiplier}")

        table = summary.table
        if INTERCEPT not in table.index:
            raise PriorShapeError(
                f"Posterior summary has no '{INTERCEPT}' row. Got {list(table.index)}"
            )
        priors = {
            row.Index: NormalPrior(
                mean=float(row.estimate),
                scale=max(float(row.std_error) * scale_multiplier, min_scale),
            )
            for row in table.itertuples()
        }
        slope_names = [name for name in table.index if name != INTERCEPT]
        logger.info(
            f"Derived {len(priors)} informative priors from posterior summary "
            f"(scale_multiplier={scale_multiplier})"
        )
        return cls(
            intercept=priors[INTERCEPT],
            overrides=[priors[name] for name in slope_names],
            override_names=slope_names,
        )

    def resolve(self, design) -> ResolvedPriors:
        """
        Match priors to the columns of a design matrix.

        Parameters
        ----------
        design : DesignMatrix

        Returns
        -------
        priors : ResolvedPriors

        Raises
        ------
        PriorShapeError
            If ``overrides`` does not hold exactly one prior per slope,
            or if ``override_names`` do not match the design's slope columns.
        """
        n_slopes = design.n_slopes
        if self.overrides is not None:
            if len(self.overrides) != n_slopes:
                raise PriorShapeError(
                    f"Got {len(self.overrides)} prior overrides for {n_slopes} "
                    f"non-intercept coefficients {list(design.column_names[1:])}"
                )
            slope_priors = list(self.overrides)
            if self.override_names is not None:
                slope_priors = self._match_by_name(design.column_names[1:])
        else:
            slope_priors = [self.default] * n_slopes

        column_std = design.column_std()
        means = [self.intercept.mean]
        scales = [self._scaled(self.intercept, column_std[0])]
        for prior, std in zip(slope_priors, column_std[1:]):
            means.append(prior.mean)
            scales.append(self._scaled(prior, std))

        return ResolvedPriors(
            means=tuple(float(m) for m in means),
            scales=tuple(float(s) for s in scales),
            column_names=tuple(design.column_names),
        )

    def _match_by_name(self, slope_names: Sequence[str]) -> List[NormalPrior]:
        by_name = dict(zip(self.override_names, self.overrides))
        if set(by_name) != set(slope_names) or len(by_name) != len(self.override_names):
            raise PriorShapeError(
                f"Prior overrides name coefficients {list(self.override_names)} but the "
                f"design has {list(slope_names)}"
            )
        return [by_name[name] for name in slope_names]

    @staticmethod
    def _scaled(prior: NormalPrior, column_std: float) -> float:
        # constant columns (intercept, unused levels) keep the raw scale
        if prior.autoscale and column_std > 0:
            return prior.scale / column_std
        return prior.scale

    def __repr__(self) -> str:
        n_overrides = None if self.overrides is None else len(self.overrides)
        return (
            f"PriorSpec(intercept={self.intercept}, default={self.default}, "
            f"overrides={n_overrides})"
        )
