"""
Convergence diagnostics for multi-chain MCMC output.

Key diagnostics:
- Split r-hat (potential scale reduction on half-chains): <1.01 indicates convergence
- ESS (effective sample size, autocorrelation-aware): >400 recommended
- Failed chains and divergences reported by the sampler
- Data problems found before sampling: rank deficiency and separation,
  either of which leaves the likelihood without a finite maximum along
  some direction so the posterior is driven by the prior alone
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import fft

from goforit.exceptions import ConvergenceError

logger = logging.getLogger(__name__)


def _extreme_ignoring_nan(values: Sequence[float], pick) -> float:
    kept = [v for v in values if not np.isnan(v)]
    return pick(kept) if kept else float("nan")


@dataclass(frozen=True)
class DiagnosticsReport:
    """
    Convergence report attached to every fit.

    ``converged`` is False whenever any entry of ``problems`` is present;
    a caller that must not consume an unconverged posterior calls
    ``raise_if_unconverged()``.
    """

    coefficient_names: Tuple[str, ...]
    rhat: Tuple[float, ...]
    ess: Tuple[float, ...]
    n_chains: int
    failed_chains: Tuple[int, ...] = ()
    divergences: int = 0
    data_problems: Tuple[str, ...] = ()
    rhat_threshold: float = 1.01
    min_ess: float = 400.0
    notes: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def problems(self) -> List[str]:
        problems = list(self.data_problems) + list(self.notes)
        if self.failed_chains:
            problems.append(
                f"{len(self.failed_chains)} of {self.n_chains} chains failed: "
                f"{list(self.failed_chains)}"
            )
        for name, rhat, ess in zip(self.coefficient_names, self.rhat, self.ess):
            if not np.isfinite(rhat) or rhat > self.rhat_threshold:
                problems.append(f"r-hat of '{name}' is {rhat:.4f} (> {self.rhat_threshold})")
            if not np.isfinite(ess) or ess < self.min_ess:
                problems.append(f"ESS of '{name}' is {ess:.0f} (< {self.min_ess:.0f})")
        return problems

    @property
    def converged(self) -> bool:
        return not self.problems

    def raise_if_unconverged(self) -> None:
        """
        Raises
        ------
        ConvergenceError
            If any diagnostic problem was found.
        """
        problems = self.problems
        if problems:
            raise ConvergenceError("Posterior did not converge: " + "; ".join(problems))

    def to_frame(self) -> pd.DataFrame:
        """Per-coefficient r-hat and ESS with a ``flagged`` column."""
        frame = pd.DataFrame(
            {"rhat": self.rhat, "ess": self.ess},
            index=pd.Index(self.coefficient_names, name="coefficient"),
        )
        frame["flagged"] = ~(
            np.isfinite(frame["rhat"])
            & (frame["rhat"] <= self.rhat_threshold)
            & np.isfinite(frame["ess"])
            & (frame["ess"] >= self.min_ess)
        )
        return frame

    def __repr__(self) -> str:
        return (
            f"DiagnosticsReport(converged={self.converged}, "
            f"max_rhat={_extreme_ignoring_nan(self.rhat, max):.4f}, "
            f"min_ess={_extreme_ignoring_nan(self.ess, min):.0f}, "
            f"failed_chains={list(self.failed_chains)})"
        )


class DiagnosticsComputer:
    """
    Compute convergence diagnostics from posterior samples.

    Includes: split r-hat, ESS, separation and collinearity checks.
    """

    MIN_DRAWS = 4

    @staticmethod
    def split_chains(posterior_samples: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Split every chain into its first and second half.

        Parameters
        ----------
        posterior_samples : NDArray[np.float64]
            Shape (chains, draws). With an odd number of draws the middle
            draw is dropped.

        Returns
        -------
        NDArray[np.float64]
            Shape (2 * chains, draws // 2).
        """
        samples = np.atleast_2d(np.asarray(posterior_samples, dtype=np.float64))
        half = samples.shape[1] // 2
        return np.concatenate([samples[:, :half], samples[:, -half:]], axis=0)

    @staticmethod
    def rhat(posterior_samples: NDArray[np.float64]) -> float:
        """
        Compute split r-hat (potential scale reduction factor).

        Compares within-chain to between-chain variance on half-chains, so a
        single chain that drifts is also caught. r-hat < 1.01 indicates
        convergence.

        Parameters
        ----------
        posterior_samples : NDArray[np.float64]
            Posterior samples from one or more chains, shape (chains, draws).

        Returns
        -------
        rhat : float
            Potential scale reduction factor. <1.01 is good.
        """
        samples = np.atleast_2d(np.asarray(posterior_samples, dtype=np.float64))
        if samples.shape[1] < DiagnosticsComputer.MIN_DRAWS:
            raise ValueError(
                f"Need at least {DiagnosticsComputer.MIN_DRAWS} draws per chain for r-hat. "
                f"Got {samples.shape[1]}"
            )

        split = DiagnosticsComputer.split_chains(samples)
        n_draws = split.shape[1]

        # Between-chain variance
        chain_means = np.mean(split, axis=1)
        B = n_draws * np.var(chain_means, ddof=1)

        # Within-chain variance
        W = np.mean(np.var(split, axis=1, ddof=1))

        if W <= 0:
            return 1.0 if B <= 0 else float("inf")

        var_hat = ((n_draws - 1) / n_draws) * W + B / n_draws
        return float(np.sqrt(var_hat / W))

    @staticmethod
    def autocovariance(x: NDArray[np.float64]) -> NDArray[np.float64]:
        """Biased autocovariance of a 1-D series for lags 0..n-1, via FFT."""
        x = np.asarray(x, dtype=np.float64)
        n = x.shape[0]
        size = fft.next_fast_len(2 * n)
        spectrum = fft.rfft(x - x.mean(), n=size)
        return fft.irfft(spectrum * np.conjugate(spectrum), n=size)[:n] / n

    @staticmethod
    def ess(posterior_samples: NDArray[np.float64]) -> float:
        """
        Compute effective sample size (ESS) across chains.

        Autocorrelations are pooled across split chains and truncated with
        Geyer's initial monotone sequence. ESS > 400 is recommended.

        Parameters
        ----------
        posterior_samples : NDArray[np.float64]
            Shape (chains, draws) or (draws,) for a single chain.

        Returns
        -------
        ess : float
            Effective sample size.
        """
        samples = np.atleast_2d(np.asarray(posterior_samples, dtype=np.float64))
        if samples.shape[1] < DiagnosticsComputer.MIN_DRAWS:
            raise ValueError(
                f"Need at least {DiagnosticsComputer.MIN_DRAWS} draws per chain for ESS. "
                f"Got {samples.shape[1]}"
            )

        split = DiagnosticsComputer.split_chains(samples)
        n_chains, n_draws = split.shape
        n_total = n_chains * n_draws

        acov = np.array([DiagnosticsComputer.autocovariance(chain) for chain in split])
        mean_var = np.mean(acov[:, 0]) * n_draws / (n_draws - 1)
        var_plus = mean_var * (n_draws - 1) / n_draws
        if n_chains > 1:
            var_plus += np.var(np.mean(split, axis=1), ddof=1)

        if var_plus < 1e-12:
            return float(n_total)  # No variation → ESS = n

        rho = 1.0 - (mean_var - np.mean(acov, axis=0)) / var_plus
        rho[0] = 1.0

        # Geyer's initial positive sequence over lag pairs
        pair_sums: List[float] = []
        for t in range(0, n_draws - 1, 2):
            pair = rho[t] + rho[t + 1]
            if pair <= 0:
                break
            pair_sums.append(pair)

        # Initial monotone sequence
        for i in range(1, len(pair_sums)):
            pair_sums[i] = min(pair_sums[i], pair_sums[i - 1])

        tau = -1.0 + 2.0 * float(np.sum(pair_sums))
        tau = max(tau, 1.0 / np.log10(n_total))
        return float(n_total / tau)

    @staticmethod
    def data_problems(
        X: NDArray[np.float64],
        y: NDArray[np.int8],
        column_names: Sequence[str],
    ) -> List[str]:
        """
        Find design problems that make the likelihood flat or unbounded.

        Detects a single-class outcome, rank deficiency (perfectly collinear
        columns) and covariates that separate the outcome on their own
        (complete or quasi-complete separation).

        Returns
        -------
        problems : list of str
            Human-readable descriptions, empty when the design is sound.
        """
        problems: List[str] = []
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y)

        positives = int(y.sum())
        if positives == 0 or positives == len(y):
            problems.append(f"outcome takes a single value in all {len(y)} observations")
            return problems

        rank = np.linalg.matrix_rank(X)
        if rank < X.shape[1]:
            problems.append(
                f"design matrix is rank deficient (rank {rank} < {X.shape[1]} columns); "
                f"some columns are perfectly collinear"
            )

        for j, name in enumerate(column_names):
            column = X[:, j]
            if np.ptp(column) == 0:
                continue
            ones, zeros = column[y == 1], column[y == 0]
            if ones.min() > zeros.max() or ones.max() < zeros.min():
                problems.append(f"'{name}' completely separates the outcome")
            elif ones.min() >= zeros.max() or ones.max() <= zeros.min():
                problems.append(f"'{name}' quasi-completely separates the outcome")

        return problems

    @classmethod
    def report(
        cls,
        samples_by_chain: NDArray[np.float64],
        coefficient_names: Sequence[str],
        n_chains: int,
        failed_chains: Sequence[int] = (),
        divergences: int = 0,
        data_problems: Sequence[str] = (),
        rhat_threshold: float = 1.01,
        min_ess: float = 400.0,
    ) -> DiagnosticsReport:
        """
        Build a diagnostics report. Never raises on statistical problems.

        Parameters
        ----------
        samples_by_chain : NDArray[np.float64]
            Kept draws of the surviving chains, shape (chains, draws, coefficients).
        coefficient_names : sequence of str
        n_chains : int
            Chains requested, failed ones included.
        failed_chains : sequence of int
            Indices of chains that were excluded.
        divergences : int
            Divergent transitions among kept draws.
        data_problems : sequence of str
            Output of ``data_problems()``.
        """
        samples = np.asarray(samples_by_chain, dtype=np.float64)
        names = tuple(coefficient_names)
        notes: List[str] = []

        if samples.ndim != 3 or samples.shape[0] == 0 or samples.shape[1] < cls.MIN_DRAWS:
            notes.append(
                f"not enough draws for diagnostics (shape {samples.shape}, "
                f"need >= {cls.MIN_DRAWS} draws per chain)"
            )
            rhat = tuple(float("nan") for _ in names)
            ess = tuple(float("nan") for _ in names)
        else:
            rhat = tuple(cls.rhat(samples[:, :, j]) for j in range(samples.shape[2]))
            ess = tuple(cls.ess(samples[:, :, j]) for j in range(samples.shape[2]))

        if divergences:
            notes.append(f"{divergences} divergent transitions after warmup")

        report = DiagnosticsReport(
            coefficient_names=names,
            rhat=rhat,
            ess=ess,
            n_chains=n_chains,
            failed_chains=tuple(failed_chains),
            divergences=int(divergences),
            data_problems=tuple(data_problems),
            rhat_threshold=rhat_threshold,
            min_ess=min_ess,
            notes=tuple(notes),
        )
        logger.debug("Diagnostics: %r", report)
        return report

