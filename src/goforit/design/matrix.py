"""
Design matrix construction for binary-choice logistic regression.

Turns an observation table into a fixed numeric design:

    X = [1, one_hot(c_1)[:, levels != ref_1], ..., x_1, ..., x_m]
    y_i = 1 if outcome_i == outcome.levels[1] else 0

Each categorical covariate contributes (levels - 1) indicator columns, the
reference level being dropped so the intercept stays identifiable. The
resolved schema is frozen once built and is reused for every prior
configuration, every MCMC run and every prediction.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from goforit.exceptions import SchemaError

logger = logging.getLogger(__name__)

INTERCEPT = "Intercept"
CATEGORICAL = "categorical"
CONTINUOUS = "continuous"


@dataclass(frozen=True)
class TermSpec:
    """
    One covariate of the model.

    Attributes
    ----------
    name : str
        Column name in the observation table.
    kind : str
        ``"categorical"`` or ``"continuous"``.
    levels : tuple, optional
        Allowed values of a categorical covariate, in order. Required for
        categorical terms, ignored for continuous ones.
    reference : optional
        Baseline level dropped from the encoding. Defaults to ``levels[0]``.
    """

    name: str
    kind: str = CONTINUOUS
    levels: Optional[Tuple[Any, ...]] = None
    reference: Any = None

    def __post_init__(self) -> None:
        if self.kind not in (CATEGORICAL, CONTINUOUS):
            raise SchemaError(
                f"Term '{self.name}' has unknown kind '{self.kind}'. "
                f"Expected '{CATEGORICAL}' or '{CONTINUOUS}'"
            )
        if self.kind == CATEGORICAL:
            if not self.levels or len(self.levels) < 2:
                raise SchemaError(
                    f"Categorical term '{self.name}' needs at least 2 declared levels"
                )
            levels = tuple(self.levels)
            if len(set(levels)) != len(levels):
                raise SchemaError(f"Categorical term '{self.name}' has duplicate levels")
            object.__setattr__(self, "levels", levels)
            if self.reference is None:
                object.__setattr__(self, "reference", levels[0])
            elif self.reference not in levels:
                raise SchemaError(
                    f"Reference level {self.reference!r} of '{self.name}' "
                    f"is not one of {levels}"
                )

    @classmethod
    def categorical(cls, name: str, levels: Sequence[Any], reference: Any = None) -> "TermSpec":
        return cls(name=name, kind=CATEGORICAL, levels=tuple(levels), reference=reference)

    @classmethod
    def continuous(cls, name: str) -> "TermSpec":
        return cls(name=name, kind=CONTINUOUS)

    @property
    def encoded_levels(self) -> Tuple[Any, ...]:
        """Levels that get their own indicator column (reference dropped)."""
        if self.kind != CATEGORICAL:
            return ()
        return tuple(level for level in self.levels if level != self.reference)

    def column_names(self) -> List[str]:
        if self.kind == CONTINUOUS:
            return [self.name]
        return [f"{self.name}[{level}]" for level in self.encoded_levels]


@dataclass(frozen=True)
class OutcomeSpec:
    """Binary outcome column; ``levels[0]`` is coded 0 and ``levels[1]`` is coded 1."""

    name: str
    levels: Tuple[Any, Any]

    def __post_init__(self) -> None:
        levels = tuple(self.levels)
        if len(levels) != 2 or levels[0] == levels[1]:
            raise SchemaError(
                f"Outcome '{self.name}' needs exactly 2 distinct levels. Got {levels}"
            )
        object.__setattr__(self, "levels", levels)


class DesignMatrix:
    """
    Immutable numeric design for one observation table.

    Attributes
    ----------
    X : NDArray[np.float64]
        Read-only design matrix, shape (n_obs, n_coefficients).
        Column 0 is the intercept.
    y : NDArray[np.int8]
        Read-only outcome vector in {0, 1}, shape (n_obs,).
    column_names : tuple of str
        Coefficient names, one per column of X.
    terms : tuple of TermSpec
        Resolved term schema that produced the columns.
    outcome : OutcomeSpec
        Outcome coding.
    """

    def __init__(
        self,
        X: NDArray[np.float64],
        y: NDArray[np.int8],
        column_names: Sequence[str],
        terms: Sequence[TermSpec],
        outcome: OutcomeSpec,
    ) -> None:
        if X.ndim != 2:
            raise ValueError(f"X must be 2-dimensional. Got shape {X.shape}")
        if X.shape[0] != y.shape[0]:
            raise ValueError(
                f"X and y must have the same number of rows. Got {X.shape[0]} and {y.shape[0]}"
            )
        if X.shape[1] != len(column_names):
            raise ValueError(
                f"Got {len(column_names)} column names for {X.shape[1]} columns"
            )

        self.X = np.array(X, dtype=np.float64)
        self.y = np.array(y, dtype=np.int8)
        self.X.flags.writeable = False
        self.y.flags.writeable = False
        self.column_names = tuple(column_names)
        self.terms = tuple(terms)
        self.outcome = outcome

    @property
    def n_obs(self) -> int:
        return self.X.shape[0]

    @property
    def n_coefficients(self) -> int:
        return self.X.shape[1]

    @property
    def n_slopes(self) -> int:
        """Number of non-intercept coefficients."""
        return self.X.shape[1] - 1

    def column_std(self) -> NDArray[np.float64]:
        """Empirical standard deviation of every column (0 for the intercept)."""
        if self.n_obs < 2:
            return np.zeros(self.n_coefficients)
        return self.X.std(axis=0, ddof=1)

    def to_frame(self) -> pd.DataFrame:
        """Design matrix with named columns plus the coded outcome."""
        frame = pd.DataFrame(self.X, columns=list(self.column_names))
        frame[self.outcome.name] = self.y
        return frame

    def __repr__(self) -> str:
        return (
            f"DesignMatrix(n_obs={self.n_obs}, "
            f"columns={list(self.column_names)})"
        )


class DesignMatrixBuilder:
    """
    Build design matrices from observation tables for a fixed term schema.

    Parameters
    ----------
    terms : sequence of TermSpec
        Covariates in column order.
    outcome : OutcomeSpec
        Outcome column and its two levels.
    """

    def __init__(self, terms: Sequence[TermSpec], outcome: OutcomeSpec) -> None:
        names = [term.name for term in terms]
        if len(set(names)) != len(names):
            raise SchemaError(f"Duplicate term names in {names}")
        if outcome.name in names:
            raise SchemaError(f"Outcome '{outcome.name}' is also declared as a covariate")

        self.terms = tuple(terms)
        self.outcome = outcome

    @property
    def column_names(self) -> List[str]:
        names = [INTERCEPT]
        for term in self.terms:
            names.extend(term.column_names())
        return names

    def build(self, table: pd.DataFrame) -> DesignMatrix:
        """
        Encode an observation table.

        Parameters
        ----------
        table : pd.DataFrame
            One row per observation with the outcome and every declared term.

        Returns
        -------
        design : DesignMatrix

        Raises
        ------
        SchemaError
            If a declared column is missing, has missing values, or holds a
            value outside its declared levels.
        """
        self._require_columns(table, [self.outcome.name])
        y = self._encode_outcome(table[self.outcome.name])
        X = self.transform(table)

        logger.debug(f"Built design matrix {X.shape} from {len(table)} observations")
        return DesignMatrix(X, y, self.column_names, self.terms, self.outcome)

    def transform(self, table: pd.DataFrame) -> NDArray[np.float64]:
        """Encode covariates only, e.g. for predicting on new observations."""
        self._require_columns(table, [term.name for term in self.terms])

        blocks = [np.ones((len(table), 1))]
        for term in self.terms:
            column = table[term.name]
            if column.isna().any():
                raise SchemaError(
                    f"Column '{term.name}' has {int(column.isna().sum())} missing values"
                )
            if term.kind == CATEGORICAL:
                blocks.append(self._encode_categorical(term, column))
            else:
                blocks.append(self._encode_continuous(term, column))

        return np.hstack(blocks).astype(np.float64)

    def _require_columns(self, table: pd.DataFrame, names: Sequence[str]) -> None:
        missing = [name for name in names if name not in table.columns]
        if missing:
            raise SchemaError(f"Observation table is missing columns {missing}")

    def _encode_outcome(self, column: pd.Series) -> NDArray[np.int8]:
        if column.isna().any():
            raise SchemaError(
                f"Outcome '{self.outcome.name}' has {int(column.isna().sum())} missing values"
            )
        unknown = set(column.unique()) - set(self.outcome.levels)
        if unknown:
            raise SchemaError(
                f"Outcome '{self.outcome.name}' has values {sorted(map(str, unknown))} "
                f"outside declared levels {self.outcome.levels}"
            )
        return (column == self.outcome.levels[1]).to_numpy().astype(np.int8)

    @staticmethod
    def _encode_categorical(term: TermSpec, column: pd.Series) -> NDArray[np.float64]:
        unknown = set(column.unique()) - set(term.levels)
        if unknown:
            raise SchemaError(
                f"Column '{term.name}' has values {sorted(map(str, unknown))} "
                f"outside declared levels {term.levels}"
            )
        values = column.to_numpy()
        return np.column_stack(
            [(values == level).astype(np.float64) for level in term.encoded_levels]
        )

    @staticmethod
    def _encode_continuous(term: TermSpec, column: pd.Series) -> NDArray[np.float64]:
        if not pd.api.types.is_numeric_dtype(column) or pd.api.types.is_bool_dtype(column):
            raise SchemaError(
                f"Continuous column '{term.name}' must be numeric. Got dtype {column.dtype}"
            )
        values = column.to_numpy(dtype=np.float64)
        if not np.all(np.isfinite(values)):
            raise SchemaError(f"Continuous column '{term.name}' has non-finite values")
        return values.reshape(-1, 1)

    def __repr__(self) -> str:
        return f"DesignMatrixBuilder(terms={[t.name for t in self.terms]}, outcome='{self.outcome.name}')"
