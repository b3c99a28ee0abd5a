"""
Bayesian model builder: PyMC logistic regression for binary choices.

Mathematical model:
    β_j ~ Normal(μ_j, σ_j)                 # one prior per design column
    η_i = x_i · β                          # linear predictor (log-odds)
    y_i ~ Bernoulli(logit⁻¹(η_i))          # observed choice
"""

import numpy as np
import pymc as pm

from goforit.design.matrix import DesignMatrix
from goforit.inference.priors import ResolvedPriors

COEFFICIENT_DIM = "coefficient"
OBS_DIM = "obs"


class ModelBuilder:
    """
    Logistic regression model builder.

    Attributes
    ----------
    design : DesignMatrix
        Design matrix and coded outcome.
    priors : ResolvedPriors
        Prior means and scales, one per design column.
    """

    def __init__(self, design: DesignMatrix, priors: ResolvedPriors) -> None:
        """
        Initialize model builder.

        Parameters
        ----------
        design : DesignMatrix
            Design matrix from DesignMatrixBuilder.build().
        priors : ResolvedPriors
            Priors resolved against the same design.
        """
        if priors.n_coefficients != design.n_coefficients:
            raise ValueError(
                f"priors cover {priors.n_coefficients} coefficients but the design "
                f"has {design.n_coefficients}"
            )
        if design.n_obs == 0:
            raise ValueError("Cannot build a model from an empty design matrix")

        self.design = design
        self.priors = priors

    def build(self) -> pm.Model:
        """
        Build the full PyMC model.

        Every call returns a fresh model so that concurrently running chains
        never share a graph.

        Returns
        -------
        model : pm.Model
            PyMC model ready for inference, with a ``beta`` vector over the
            ``coefficient`` dimension.
        """
        means, scales = self.priors.as_arrays()
        coords = {
            COEFFICIENT_DIM: list(self.design.column_names),
            OBS_DIM: np.arange(self.design.n_obs),
        }

        with pm.Model(coords=coords) as model:
            X = pm.Data("X", np.asarray(self.design.X), dims=(OBS_DIM, COEFFICIENT_DIM))
            beta = pm.Normal("beta", mu=means, sigma=scales, dims=COEFFICIENT_DIM)
            eta = pm.math.dot(X, beta)
            pm.Bernoulli(
                "y_obs",
                logit_p=eta,
                observed=np.asarray(self.design.y),
                dims=OBS_DIM,
            )

        return model

    def __repr__(self) -> str:
        return (
            f"ModelBuilder(n_obs={self.design.n_obs}, "
            f"coefficients={list(self.design.column_names)})"
        )
