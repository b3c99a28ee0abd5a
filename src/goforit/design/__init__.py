"""
Design matrix construction for binary-choice models.

**Usage:**
```python
from goforit.design import DesignMatrixBuilder, OutcomeSpec, TermSpec

builder = DesignMatrixBuilder(
    terms=[
        TermSpec.categorical("down", levels=[1, 2, 3, 4]),
        TermSpec.continuous("ydstogo"),
    ],
    outcome=OutcomeSpec("play_type", levels=("run", "pass")),
)
design = builder.build(plays)   # plays: pandas DataFrame
design.X.shape                  # (n_obs, 1 + 3 + 1)
```
"""

from goforit.design.matrix import (
    INTERCEPT,
    DesignMatrix,
    DesignMatrixBuilder,
    OutcomeSpec,
    TermSpec,
)

__all__ = [
    "INTERCEPT",
    "DesignMatrix",
    "DesignMatrixBuilder",
    "OutcomeSpec",
    "TermSpec",
]
