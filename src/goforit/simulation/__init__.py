"""
Synthetic binary-choice data with known coefficients.

**Usage:**
```python
from goforit.design import OutcomeSpec, TermSpec
from goforit.simulation import ChoiceSimulator

sim = ChoiceSimulator(
    terms=[TermSpec.continuous("ydstogo")],
    outcome=OutcomeSpec("play_type", levels=("run", "pass")),
    coefficients=[0.0, 0.05],
    continuous_ranges={"ydstogo": (0, 40)},
)
plays = sim.simulate(n_obs=1000, random_seed=7)
```
"""

from goforit.simulation.synthetic import ChoiceSimulator

__all__ = [
    "ChoiceSimulator",
]
