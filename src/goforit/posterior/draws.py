"""
Posterior draw sets: kept MCMC draws annotated with their chain.
"""

from typing import Optional, Sequence

import arviz as az
import numpy as np
import pandas as pd
from numpy.typing import NDArray

CHAIN = "chain"
DRAW = "draw"


class PosteriorDrawSet:
    """
    Kept posterior draws of one fit.

    Attributes
    ----------
    values : NDArray[np.float64]
        Read-only draws, shape (n_draws, n_coefficients), ordered by chain
        then iteration.
    chain : NDArray[np.int64]
        Chain index of every draw, shape (n_draws,).
    coefficient_names : tuple of str
    """

    def __init__(
        self,
        values: NDArray[np.float64],
        chain: NDArray[np.int64],
        coefficient_names: Sequence[str],
    ) -> None:
        values = np.array(values, dtype=np.float64)
        chain = np.array(chain, dtype=np.int64)
        if values.ndim != 2:
            raise ValueError(f"values must be 2-dimensional. Got shape {values.shape}")
        if chain.shape != (values.shape[0],):
            raise ValueError(
                f"chain must have shape ({values.shape[0]},). Got {chain.shape}"
            )
        if values.shape[1] != len(coefficient_names):
            raise ValueError(
                f"Got {len(coefficient_names)} coefficient names for {values.shape[1]} columns"
            )

        values.flags.writeable = False
        chain.flags.writeable = False
        self.values = values
        self.chain = chain
        self.coefficient_names = tuple(coefficient_names)

    @classmethod
    def from_chains(
        cls,
        chain_draws: Sequence[NDArray[np.float64]],
        chain_ids: Sequence[int],
        coefficient_names: Sequence[str],
    ) -> "PosteriorDrawSet":
        """Stack per-chain arrays of shape (draws, coefficients)."""
        if not chain_draws:
            raise ValueError("Need draws from at least one chain")
        values = np.concatenate([np.asarray(d, dtype=np.float64) for d in chain_draws], axis=0)
        chain = np.concatenate(
            [np.full(len(d), cid, dtype=np.int64) for d, cid in zip(chain_draws, chain_ids)]
        )
        return cls(values, chain, coefficient_names)

    @property
    def n_draws(self) -> int:
        return self.values.shape[0]

    @property
    def n_coefficients(self) -> int:
        return self.values.shape[1]

    @property
    def chain_ids(self) -> NDArray[np.int64]:
        """Distinct chain indices in order of first appearance."""
        _, first = np.unique(self.chain, return_index=True)
        return self.chain[np.sort(first)]

    @property
    def n_chains(self) -> int:
        return len(self.chain_ids)

    def by_chain(self) -> NDArray[np.float64]:
        """
        Draws as shape (chains, draws_per_chain, coefficients).

        Raises
        ------
        ValueError
            If chains kept different numbers of draws.
        """
        blocks = [self.values[self.chain == cid] for cid in self.chain_ids]
        lengths = {len(b) for b in blocks}
        if len(lengths) > 1:
            raise ValueError(f"Chains have unequal lengths {sorted(lengths)}")
        return np.stack(blocks, axis=0)

    def coefficient(self, name: str) -> NDArray[np.float64]:
        return self.values[:, self.coefficient_names.index(name)]

    def to_frame(self) -> pd.DataFrame:
        """Wide table: one column per coefficient plus ``chain`` and ``draw``."""
        frame = pd.DataFrame(self.values, columns=list(self.coefficient_names))
        frame.insert(0, CHAIN, self.chain)
        frame.insert(1, DRAW, frame.groupby(CHAIN).cumcount().to_numpy())
        return frame

    def to_inference_data(self, var_name: str = "beta") -> az.InferenceData:
        """Posterior as ArviZ InferenceData, for ArviZ plots and summaries."""
        return az.from_dict(
            posterior={var_name: self.by_chain()},
            coords={"coefficient": list(self.coefficient_names)},
            dims={var_name: ["coefficient"]},
        )

    def equals(self, other: Optional["PosteriorDrawSet"]) -> bool:
        return (
            other is not None
            and self.coefficient_names == other.coefficient_names
            and np.array_equal(self.chain, other.chain)
            and np.array_equal(self.values, other.values)
        )

    def __len__(self) -> int:
        return self.n_draws

    def __repr__(self) -> str:
        return (
            f"PosteriorDrawSet(n_draws={self.n_draws}, n_chains={self.n_chains}, "
            f"coefficients={list(self.coefficient_names)})"
        )
