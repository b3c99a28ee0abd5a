"""
Unit tests for design matrix construction.

Tests cover:
- Term and outcome validation
- Shape and column layout of the encoded matrix
- One-hot encoding with a dropped reference level
- Outcome coding
- Schema errors on bad input tables
"""

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_array_equal

from goforit.design import INTERCEPT, DesignMatrixBuilder, OutcomeSpec, TermSpec
from goforit.exceptions import SchemaError


class TestTermSpec:
    """Tests for TermSpec and OutcomeSpec validation."""

    def test_reference_defaults_to_first_level(self) -> None:
        term = TermSpec.categorical("down", levels=[1, 2, 3, 4])
        assert term.reference == 1
        assert term.encoded_levels == (2, 3, 4)
        assert term.column_names() == ["down[2]", "down[3]", "down[4]"]

    def test_explicit_reference(self) -> None:
        term = TermSpec.categorical("down", levels=[1, 2, 3, 4], reference=4)
        assert term.encoded_levels == (1, 2, 3)

    def test_reference_outside_levels_raises(self) -> None:
        with pytest.raises(SchemaError, match="not one of"):
            TermSpec.categorical("down", levels=[1, 2, 3], reference=5)

    def test_categorical_needs_two_levels(self) -> None:
        with pytest.raises(SchemaError, match="at least 2"):
            TermSpec.categorical("down", levels=[1])

    def test_unknown_kind_raises(self) -> None:
        with pytest.raises(SchemaError, match="unknown kind"):
            TermSpec("down", kind="ordinal")

    def test_outcome_needs_two_distinct_levels(self) -> None:
        with pytest.raises(SchemaError):
            OutcomeSpec("decision", levels=("go", "go"))

    def test_duplicate_term_names_raise(self, go_outcome) -> None:
        with pytest.raises(SchemaError, match="Duplicate"):
            DesignMatrixBuilder([TermSpec.continuous("x"), TermSpec.continuous("x")], go_outcome)


class TestDesignMatrixBuilder:
    """Tests for encoding observation tables."""

    def test_shape_matches_term_layout(self, down_distance_terms, go_outcome, plays_small) -> None:
        design = DesignMatrixBuilder(down_distance_terms, go_outcome).build(plays_small)
        # 1 intercept + (4 - 1) down indicators + 1 continuous
        assert design.X.shape == (len(plays_small), 5)
        assert design.column_names == (INTERCEPT, "down[2]", "down[3]", "down[4]", "ydstogo")

    def test_one_hot_drops_reference(self, down_distance_terms, go_outcome, plays_small) -> None:
        design = DesignMatrixBuilder(down_distance_terms, go_outcome).build(plays_small)
        indicators = design.X[:, 1:4]
        first_down = plays_small["down"].to_numpy() == 1
        assert_array_equal(indicators[first_down], 0.0)
        assert_array_equal(indicators[~first_down].sum(axis=1), 1.0)
        assert_array_equal(design.X[:, 0], 1.0)
        assert_array_equal(design.X[:, 4], plays_small["ydstogo"].to_numpy())

    def test_outcome_coding(self, down_distance_terms, go_outcome, plays_small) -> None:
        design = DesignMatrixBuilder(down_distance_terms, go_outcome).build(plays_small)
        expected = (plays_small["decision"] == "go").astype(int).to_numpy()
        assert_array_equal(design.y, expected)

    def test_design_is_read_only(self, down_distance_terms, go_outcome, plays_small) -> None:
        design = DesignMatrixBuilder(down_distance_terms, go_outcome).build(plays_small)
        with pytest.raises(ValueError):
            design.X[0, 0] = 5.0

    def test_missing_column_raises(self, down_distance_terms, go_outcome, plays_small) -> None:
        builder = DesignMatrixBuilder(down_distance_terms, go_outcome)
        with pytest.raises(SchemaError, match="missing columns"):
            builder.build(plays_small.drop(columns="ydstogo"))

    def test_missing_outcome_raises(self, down_distance_terms, go_outcome, plays_small) -> None:
        builder = DesignMatrixBuilder(down_distance_terms, go_outcome)
        with pytest.raises(SchemaError, match="missing columns"):
            builder.build(plays_small.drop(columns="decision"))

    def test_undeclared_level_raises(self, down_distance_terms, go_outcome, plays_small) -> None:
        plays = plays_small.copy()
        plays.loc[0, "down"] = 5
        with pytest.raises(SchemaError, match="outside declared levels"):
            DesignMatrixBuilder(down_distance_terms, go_outcome).build(plays)

    def test_undeclared_outcome_raises(self, down_distance_terms, go_outcome, plays_small) -> None:
        plays = plays_small.copy()
        plays.loc[0, "decision"] = "punt"
        with pytest.raises(SchemaError, match="outside declared levels"):
            DesignMatrixBuilder(down_distance_terms, go_outcome).build(plays)

    def test_missing_values_raise(self, down_distance_terms, go_outcome, plays_small) -> None:
        plays = plays_small.copy()
        plays.loc[2, "ydstogo"] = np.nan
        with pytest.raises(SchemaError, match="missing values"):
            DesignMatrixBuilder(down_distance_terms, go_outcome).build(plays)

    def test_non_numeric_continuous_raises(self, down_distance_terms, go_outcome, plays_small) -> None:
        plays = plays_small.copy()
        plays["ydstogo"] = plays["ydstogo"].astype(str)
        with pytest.raises(SchemaError, match="must be numeric"):
            DesignMatrixBuilder(down_distance_terms, go_outcome).build(plays)

    def test_transform_reuses_schema(self, down_distance_terms, go_outcome) -> None:
        builder = DesignMatrixBuilder(down_distance_terms, go_outcome)
        new_plays = pd.DataFrame({"down": [4, 1], "ydstogo": [1.0, 10.0]})
        X = builder.transform(new_plays)
        assert_array_equal(X, [[1, 0, 0, 1, 1.0], [1, 0, 0, 0, 10.0]])

    @pytest.mark.parametrize("n_obs", [1, 17, 250])
    def test_row_and_column_counts(self, n_obs) -> None:
        rng = np.random.default_rng(n_obs)
        plays = pd.DataFrame({
            "down": rng.choice([1, 2, 3, 4], size=n_obs),
            "quarter": rng.choice(["Q1", "Q2", "Q3", "Q4", "OT"], size=n_obs),
            "ydstogo": rng.uniform(0, 20, size=n_obs),
            "score_diff": rng.normal(0, 7, size=n_obs),
            "decision": rng.choice(["kick", "go"], size=n_obs),
        })
        builder = DesignMatrixBuilder(
            [
                TermSpec.categorical("down", levels=[1, 2, 3, 4]),
                TermSpec.categorical("quarter", levels=["Q1", "Q2", "Q3", "Q4", "OT"]),
                TermSpec.continuous("ydstogo"),
                TermSpec.continuous("score_diff"),
            ],
            OutcomeSpec("decision", levels=("kick", "go")),
        )
        design = builder.build(plays)
        assert design.n_obs == n_obs
        assert design.n_coefficients == 1 + 3 + 4 + 2
        assert design.n_slopes == design.n_coefficients - 1
