"""
Error taxonomy for goforit.

Structural problems (schema, prior shape, dimension mismatch) are raised
before any sampling starts. Statistical quality problems are reported as a
``ConvergenceWarning`` next to the results; callers that want a hard stop use
``DiagnosticsReport.raise_if_unconverged()`` which raises ``ConvergenceError``.
"""


class GoForItError(Exception):
    """Base class for all goforit errors."""


class SchemaError(GoForItError, ValueError):
    """Observation table does not match the declared terms."""


class PriorShapeError(GoForItError, ValueError):
    """Number of priors does not match the number of coefficients."""


class DimensionMismatchError(GoForItError, ValueError):
    """Posterior draw sets with different coefficient layouts were combined."""


class AllChainsFailedError(GoForItError, RuntimeError):
    """Every MCMC chain of a fit failed, so there is no posterior to return."""


class ConvergenceError(GoForItError, RuntimeError):
    """A caller rejected a fit whose diagnostics indicate non-convergence."""


class ChainTimeoutError(GoForItError, TimeoutError):
    """A chain ran past its deadline."""


class ConvergenceWarning(UserWarning):
    """Sampling finished but the posterior should not be trusted as-is."""
