"""
Configuration for a single model fit.

Configuration is passed by value into each fit; there is no process-wide
sampler state.
"""

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from goforit.inference.priors import NormalPrior, PriorSpec


@dataclass(frozen=True)
class SamplerConfig:
    """
    MCMC run settings.

    Attributes
    ----------
    chains : int
        Number of independent chains. Default 4.
    iterations : int
        Total iterations per chain, warmup included. Default 10000.
    warmup : int, optional
        Adaptation iterations discarded from each chain.
        Default ``iterations // 2``.
    seed : int, optional
        Seed for reproducible draws. None draws fresh entropy.
    confidence_level : float
        Credible interval mass used by summaries. Default 0.95.
    cores : int
        Chains run at once. 1 runs them one after the other. Default 1.
    chain_timeout : float, optional
        Wall-clock seconds a single chain may run before it is marked failed.
    max_divergence_rate : float
        Fraction of divergent draws above which a chain is marked failed.
        Default 0.05.
    rhat_threshold : float
        Split r-hat above which a coefficient is flagged. Default 1.01.
    min_ess : float
        Effective sample size below which a coefficient is flagged. Default 400.
    """

    chains: int = 4
    iterations: int = 10000
    warmup: Optional[int] = None
    seed: Optional[int] = None
    confidence_level: float = 0.95
    cores: int = 1
    chain_timeout: Optional[float] = None
    max_divergence_rate: float = 0.05
    rhat_threshold: float = 1.01
    min_ess: float = 400.0

    def __post_init__(self) -> None:
        if self.chains < 1:
            raise ValueError(f"chains must be >= 1. Got {self.chains}")
        if self.iterations < 2:
            raise ValueError(f"iterations must be >= 2. Got {self.iterations}")
        if self.warmup is None:
            object.__setattr__(self, "warmup", self.iterations // 2)
        if not (0 <= self.warmup < self.iterations):
            raise ValueError(
                f"warmup must be in [0, iterations). Got warmup={self.warmup}, "
                f"iterations={self.iterations}"
            )
        if not (0.0 < self.confidence_level < 1.0):
            raise ValueError(f"confidence_level must be in (0, 1). Got {self.confidence_level}")
        if self.cores < 1:
            raise ValueError(f"cores must be >= 1. Got {self.cores}")
        if self.chain_timeout is not None and self.chain_timeout <= 0:
            raise ValueError(f"chain_timeout must be positive. Got {self.chain_timeout}")
        if not (0.0 <= self.max_divergence_rate <= 1.0):
            raise ValueError(
                f"max_divergence_rate must be in [0, 1]. Got {self.max_divergence_rate}"
            )
        if self.rhat_threshold < 1.0:
            raise ValueError(f"rhat_threshold must be >= 1. Got {self.rhat_threshold}")

    @property
    def draws_per_chain(self) -> int:
        return self.iterations - self.warmup

    @property
    def total_draws(self) -> int:
        """Kept draws when every chain completes."""
        return self.chains * self.draws_per_chain


_PRIOR_KEYS = ("prior_default", "prior_intercept", "prior_overrides")


def _as_prior(value: Any) -> "NormalPrior":
    from goforit.inference.priors import NormalPrior

    if isinstance(value, NormalPrior):
        return value
    if isinstance(value, Mapping):
        return NormalPrior(**value)
    return NormalPrior(*value)


def load_options(options: Mapping[str, Any]) -> Tuple[SamplerConfig, "PriorSpec"]:
    """
    Parse a flat option mapping into a sampler config and a prior spec.

    Priors may be given as ``NormalPrior`` instances, mappings
    (``{"mean": 0, "scale": 2.5, "autoscale": True}``) or
    ``(mean, scale, autoscale)`` tuples.

    Raises
    ------
    KeyError
        If an option name is not recognized.
    """
    # deferred: goforit.inference imports this module
    from goforit.inference.priors import PriorSpec

    sampler_keys = {f.name for f in fields(SamplerConfig)}
    unknown = set(options) - sampler_keys - set(_PRIOR_KEYS)
    if unknown:
        raise KeyError(f"Unknown options: {sorted(unknown)}")

    config = SamplerConfig(**{k: v for k, v in options.items() if k in sampler_keys})

    overrides = options.get("prior_overrides")
    priors = PriorSpec(
        intercept=_as_prior(options["prior_intercept"]) if "prior_intercept" in options else None,
        default=_as_prior(options["prior_default"]) if "prior_default" in options else None,
        overrides=[_as_prior(p) for p in overrides] if overrides is not None else None,
    )
    return config, priors
