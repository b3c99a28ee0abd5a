"""
NUTS sampling of logistic regression posteriors.

Every chain is an independent ``pymc.sample(chains=1)`` run on its own model
instance, with its own seed and a dispersed starting point. Chains may run
on a thread pool; the only synchronization is the join before diagnostics.

Chain lifecycle:
    initializing → warming_up → sampling → completed
                 ↘            ↘          ↘ failed

A chain fails on a sampling error, non-finite draws, too many divergences,
or when it runs past ``SamplerConfig.chain_timeout``. Failed chains are
reported but contribute no draws.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pymc as pm
from numpy.typing import NDArray
from pymc.exceptions import SamplingError

from goforit.config import SamplerConfig
from goforit.design.matrix import DesignMatrix
from goforit.exceptions import AllChainsFailedError, ChainTimeoutError
from goforit.inference.model_builder import ModelBuilder
from goforit.inference.priors import ResolvedPriors
from goforit.posterior.draws import PosteriorDrawSet

logger = logging.getLogger(__name__)

_MASS_MATRIX_ERROR = "Mass matrix contains"


class ChainStatus(str, Enum):
    INITIALIZING = "initializing"
    WARMING_UP = "warming_up"
    SAMPLING = "sampling"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS = {
    ChainStatus.INITIALIZING: {ChainStatus.WARMING_UP, ChainStatus.SAMPLING, ChainStatus.FAILED},
    ChainStatus.WARMING_UP: {ChainStatus.SAMPLING, ChainStatus.FAILED},
    ChainStatus.SAMPLING: {ChainStatus.COMPLETED, ChainStatus.FAILED},
    ChainStatus.COMPLETED: set(),
    ChainStatus.FAILED: set(),
}


@dataclass
class ChainResult:
    """State and output of one chain."""

    chain: int
    seed: int
    initial_point: Tuple[float, ...]
    status: ChainStatus = ChainStatus.INITIALIZING
    draws: Optional[NDArray[np.float64]] = None
    divergences: int = 0
    error: Optional[str] = None
    elapsed: float = 0.0
    history: List[ChainStatus] = field(default_factory=lambda: [ChainStatus.INITIALIZING])

    def transition(self, status: ChainStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise RuntimeError(
                f"Chain {self.chain}: invalid transition {self.status.value} → {status.value}"
            )
        logger.debug(f"Chain {self.chain}: {self.status.value} → {status.value}")
        self.status = status
        self.history.append(status)

    def fail(self, reason: str) -> None:
        self.error = reason
        self.draws = None
        self.transition(ChainStatus.FAILED)
        logger.warning(f"Chain {self.chain} failed: {reason}")

    @property
    def ok(self) -> bool:
        return self.status == ChainStatus.COMPLETED


class _ChainMonitor:
    """PyMC draw callback that drives the chain state and enforces the deadline."""

    def __init__(self, result: ChainResult, deadline: Optional[float]) -> None:
        self.result = result
        self.deadline = deadline

    def __call__(self, trace, draw) -> None:
        if draw.tuning:
            if self.result.status == ChainStatus.INITIALIZING:
                self.result.transition(ChainStatus.WARMING_UP)
        elif self.result.status != ChainStatus.SAMPLING:
            self.result.transition(ChainStatus.SAMPLING)

        if self.deadline is not None and time.monotonic() > self.deadline:
            raise ChainTimeoutError(
                f"chain {self.result.chain} exceeded its deadline at iteration {draw.draw_idx}"
            )


class InferenceSummary:
    """Kept draws and per-chain outcomes of one MCMC run."""

    def __init__(
        self,
        draws: PosteriorDrawSet,
        chains: Sequence[ChainResult],
        n_draws: int,
        n_tune: int,
        sampling_time: float,
    ) -> None:
        """
        Initialize inference summary.

        Parameters
        ----------
        draws : PosteriorDrawSet
            Kept draws of completed chains
        chains : sequence of ChainResult
            Every requested chain, failed ones included
        n_draws : int
            Number of post-warmup draws per chain
        n_tune : int
            Number of warmup steps per chain
        sampling_time : float
            Total sampling time (seconds)
        """
        self.draws = draws
        self.chains = list(chains)
        self.n_draws = n_draws
        self.n_tune = n_tune
        self.n_chains = len(self.chains)
        self.sampling_time = sampling_time
        self.total_samples = draws.n_draws

    @property
    def failed_chains(self) -> List[int]:
        return [c.chain for c in self.chains if c.status == ChainStatus.FAILED]

    @property
    def divergences(self) -> int:
        return sum(c.divergences for c in self.chains if c.ok)

    def __repr__(self) -> str:
        return (
            f"InferenceSummary(draws={self.n_draws}, tune={self.n_tune}, "
            f"chains={self.n_chains}, failed={self.failed_chains}, "
            f"time={self.sampling_time:.1f}s)"
        )


class NUTSSampler:
    """
    NUTS sampler for Bayesian logistic regression.

    Runs independent chains of PyMC's No-U-Turn sampler and collects the
    draws of the chains that completed.
    """

    def __init__(
        self,
        target_accept: float = 0.85,
        max_treedepth: int = 10,
        init_radius: float = 2.0,
    ) -> None:
        """
        Initialize sampler.

        Parameters
        ----------
        target_accept : float
            NUTS acceptance rate target (0.5-0.99). Default 0.85.
        max_treedepth : int
            Maximum tree depth for NUTS. Default 10 (2^10 = 1024 steps max).
        init_radius : float
            Starting points are drawn uniformly within ±init_radius of the
            prior means. Default 2.0.
        """
        if not (0.5 < target_accept < 0.99):
            raise ValueError(f"target_accept must be in (0.5, 0.99). Got {target_accept}")
        if max_treedepth < 5:
            raise ValueError(f"max_treedepth must be >= 5. Got {max_treedepth}")
        if init_radius < 0:
            raise ValueError(f"init_radius must be >= 0. Got {init_radius}")

        self.target_accept = target_accept
        self.max_treedepth = max_treedepth
        self.init_radius = init_radius

    def plan_chains(
        self,
        priors: ResolvedPriors,
        config: SamplerConfig,
        initvals: Optional[Sequence[Sequence[float]]] = None,
    ) -> List[ChainResult]:
        """
        Seed every chain and pick its starting point.

        Seeds are spawned from ``config.seed`` so each chain's stream is
        independent and reproducible.
        """
        if initvals is not None and len(initvals) != config.chains:
            raise ValueError(f"Got {len(initvals)} initial points for {config.chains} chains")

        means, _ = priors.as_arrays()
        children = np.random.SeedSequence(config.seed).spawn(config.chains)
        plans = []
        for chain, child in enumerate(children):
            seed = int(child.generate_state(1)[0])
            if initvals is not None:
                start = np.asarray(initvals[chain], dtype=np.float64)
                if start.shape != means.shape:
                    raise ValueError(
                        f"Initial point for chain {chain} has shape {start.shape}, "
                        f"expected {means.shape}"
                    )
            else:
                rng = np.random.default_rng(child)
                start = means + rng.uniform(-self.init_radius, self.init_radius, size=means.shape)
            plans.append(ChainResult(chain=chain, seed=seed, initial_point=tuple(start.tolist())))
        return plans

    def sample(
        self,
        design: DesignMatrix,
        priors: ResolvedPriors,
        config: Optional[SamplerConfig] = None,
        initvals: Optional[Sequence[Sequence[float]]] = None,
        progressbar: bool = False,
    ) -> InferenceSummary:
        """
        Run NUTS chains on a logistic regression posterior.

        Parameters
        ----------
        design : DesignMatrix
            Design matrix and coded outcome.
        priors : ResolvedPriors
            Priors resolved against ``design``.
        config : SamplerConfig, optional
            Chains, iterations, warmup, seed and limits. Defaults apply if None.
        initvals : sequence of arrays, optional
            Explicit starting point per chain instead of dispersed ones.
        progressbar : bool
            Show PyMC progress bars. Default False.

        Returns
        -------
        summary : InferenceSummary
            Kept draws of completed chains plus every chain's outcome.

        Raises
        ------
        AllChainsFailedError
            If no chain completed.
        """
        config = config or SamplerConfig()
        builder = ModelBuilder(design, priors)
        plans = self.plan_chains(priors, config, initvals)

        logger.info(
            f"Sampling {config.chains} chains × {config.iterations} iterations "
            f"({config.warmup} warmup) on {design.n_obs} observations, "
            f"{design.n_coefficients} coefficients"
        )
        start_time = time.time()

        def run(plan: ChainResult) -> ChainResult:
            return self._run_chain(builder, plan, config, progressbar)

        if config.cores == 1:
            results = [run(plan) for plan in plans]
        else:
            with ThreadPoolExecutor(max_workers=min(config.cores, config.chains)) as pool:
                results = list(pool.map(run, plans))

        sampling_time = time.time() - start_time

        completed = [r for r in results if r.ok]
        if not completed:
            reasons = "; ".join(f"chain {r.chain}: {r.error}" for r in results)
            raise AllChainsFailedError(f"All {len(results)} chains failed ({reasons})")

        draws = PosteriorDrawSet.from_chains(
            [r.draws for r in completed],
            [r.chain for r in completed],
            design.column_names,
        )
        summary = InferenceSummary(
            draws=draws,
            chains=results,
            n_draws=config.draws_per_chain,
            n_tune=config.warmup,
            sampling_time=sampling_time,
        )
        logger.info(f"Finished sampling: {summary!r}")
        return summary

    def _run_chain(
        self,
        builder: ModelBuilder,
        result: ChainResult,
        config: SamplerConfig,
        progressbar: bool,
    ) -> ChainResult:
        logger.debug(
            f"Chain {result.chain}: seed={result.seed}, start={np.round(result.initial_point, 3)}"
        )
        deadline = None
        if config.chain_timeout is not None:
            deadline = time.monotonic() + config.chain_timeout

        start_time = time.time()
        try:
            with builder.build():
                step = pm.NUTS(
                    target_accept=self.target_accept,
                    max_treedepth=self.max_treedepth,
                )
                idata = pm.sample(
                    draws=config.draws_per_chain,
                    tune=config.warmup,
                    chains=1,
                    cores=1,
                    step=step,
                    random_seed=result.seed,
                    initvals={"beta": np.asarray(result.initial_point)},
                    progressbar=progressbar,
                    compute_convergence_checks=False,
                    discard_tuned_samples=True,
                    return_inferencedata=True,
                    callback=_ChainMonitor(result, deadline),
                )
        except ChainTimeoutError as e:
            result.elapsed = time.time() - start_time
            result.fail(f"timed out after {result.elapsed:.1f}s ({e})")
            return result
        except (SamplingError, FloatingPointError, np.linalg.LinAlgError) as e:
            result.elapsed = time.time() - start_time
            result.fail(f"{type(e).__name__}: {e}")
            return result
        except ValueError as e:
            # NUTS raises a plain ValueError when mass matrix adaptation blows up
            if _MASS_MATRIX_ERROR not in str(e):
                raise
            result.elapsed = time.time() - start_time
            result.fail(f"{type(e).__name__}: {e}")
            return result

        result.elapsed = time.time() - start_time
        draws = np.asarray(idata.posterior["beta"].values[0], dtype=np.float64)
        result.divergences = int(idata.sample_stats["diverging"].sum().item())

        if result.status != ChainStatus.SAMPLING:
            result.transition(ChainStatus.SAMPLING)

        if draws.shape[0] != config.draws_per_chain:
            result.fail(f"returned {draws.shape[0]} of {config.draws_per_chain} draws")
            return result
        if not np.all(np.isfinite(draws)):
            result.fail("non-finite draws")
            return result

        div_rate = result.divergences / config.draws_per_chain
        if div_rate > config.max_divergence_rate:
            result.fail(
                f"divergence rate too high: {div_rate:.1%} "
                f"({result.divergences}/{config.draws_per_chain})"
            )
            return result

        result.draws = draws
        result.transition(ChainStatus.COMPLETED)
        logger.info(
            f"Chain {result.chain} completed in {result.elapsed:.1f}s "
            f"({result.divergences} divergences)"
        )
        return result

    def __repr__(self) -> str:
        return (
            f"NUTSSampler(target_accept={self.target_accept}, "
            f"max_treedepth={self.max_treedepth})"
        )
