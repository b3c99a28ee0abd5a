"""
Comparison of posterior draws across fits.

Fits that differ in their priors ("weakly informative" vs "informative") or
in their training window ("current season" vs "historical") are stacked into
one labelled collection so a renderer can overlay per-coefficient densities.
"""

import logging
from typing import TYPE_CHECKING, Mapping, Sequence, Tuple, Union

import pandas as pd

from goforit.exceptions import DimensionMismatchError
from goforit.posterior.draws import CHAIN, DRAW, PosteriorDrawSet

if TYPE_CHECKING:
    from goforit.model import FitResult

logger = logging.getLogger(__name__)

LABEL = "label"


class ComparisonSet:
    """
    Labelled, read-only concatenation of posterior draw sets.

    Every draw of every input set is present exactly once and unmodified.
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        labels: Sequence[str],
        coefficient_names: Sequence[str],
    ) -> None:
        self._frame = frame
        self.labels = tuple(labels)
        self.coefficient_names = tuple(coefficient_names)

    def __len__(self) -> int:
        return len(self._frame)

    def sizes(self) -> dict:
        """Number of draws per label."""
        return self._frame.groupby(LABEL, sort=False).size().to_dict()

    def to_frame(self) -> pd.DataFrame:
        """Wide table: ``label``, ``chain``, ``draw`` and one column per coefficient."""
        return self._frame.copy()

    def long_format(self) -> pd.DataFrame:
        """Long table with ``label``, ``coefficient`` and ``value`` columns."""
        return self._frame.melt(
            id_vars=[LABEL, CHAIN, DRAW],
            value_vars=list(self.coefficient_names),
            var_name="coefficient",
            value_name="value",
        )

    def draws_for(self, label: str) -> pd.DataFrame:
        if label not in self.labels:
            raise KeyError(f"Unknown label '{label}'. Available: {list(self.labels)}")
        return self._frame[self._frame[LABEL] == label].drop(columns=LABEL).reset_index(drop=True)

    def __repr__(self) -> str:
        return f"ComparisonSet(sizes={self.sizes()}, coefficients={list(self.coefficient_names)})"


class PosteriorComparator:
    """Combine labelled posterior draw sets for distributional comparison."""

    def combine(
        self,
        draw_sets: Union[Mapping[str, PosteriorDrawSet], Sequence[Tuple[str, PosteriorDrawSet]]],
    ) -> ComparisonSet:
        """
        Stack two or more labelled draw sets.

        Parameters
        ----------
        draw_sets : mapping or sequence of (label, PosteriorDrawSet)

        Returns
        -------
        comparison : ComparisonSet

        Raises
        ------
        DimensionMismatchError
            If the sets do not share the same coefficients.
        ValueError
            On fewer than two sets or duplicate labels.
        """
        pairs = list(draw_sets.items()) if isinstance(draw_sets, Mapping) else list(draw_sets)
        if len(pairs) < 2:
            raise ValueError(f"Need at least 2 draw sets to compare. Got {len(pairs)}")

        labels = [label for label, _ in pairs]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Labels must be unique. Got {labels}")

        reference_label, reference = pairs[0]
        for label, draws in pairs[1:]:
            if draws.n_coefficients != reference.n_coefficients:
                raise DimensionMismatchError(
                    f"'{label}' has {draws.n_coefficients} coefficients but "
                    f"'{reference_label}' has {reference.n_coefficients}"
                )
            if draws.coefficient_names != reference.coefficient_names:
                raise DimensionMismatchError(
                    f"'{label}' coefficients {list(draws.coefficient_names)} differ from "
                    f"'{reference_label}' coefficients {list(reference.coefficient_names)}"
                )

        frames = []
        for label, draws in pairs:
            frame = draws.to_frame()
            frame.insert(0, LABEL, label)
            frames.append(frame)
        combined = pd.concat(frames, ignore_index=True)

        logger.info(
            f"Combined {len(pairs)} draw sets ({', '.join(labels)}) into {len(combined)} draws"
        )
        return ComparisonSet(combined, labels, reference.coefficient_names)

    def combine_fits(self, fits: Mapping[str, "FitResult"]) -> ComparisonSet:
        """Convenience wrapper taking ``{label: FitResult}``."""
        return self.combine({label: fit.draws for label, fit in fits.items()})
