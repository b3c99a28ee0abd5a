"""
Posterior draws, summaries and cross-fit comparison.

**Usage:**
```python
from goforit.posterior import PosteriorComparator, PosteriorSummarizer

summary = PosteriorSummarizer(confidence_level=0.95).summarize(fit.draws)
summary.to_frame(decimals=3)

comparison = PosteriorComparator().combine(
    [("weakly informative", weak_fit.draws), ("informative", informed_fit.draws)]
)
comparison.long_format()   # label / coefficient / value, ready for density plots
```
"""

from goforit.posterior.comparison import ComparisonSet, PosteriorComparator
from goforit.posterior.draws import PosteriorDrawSet
from goforit.posterior.predictive import (
    PosteriorPredictiveCheck,
    choice_probabilities,
    summarize_probabilities,
)
from goforit.posterior.summary import PosteriorSummarizer, PosteriorSummary

__all__ = [
    "ComparisonSet",
    "PosteriorComparator",
    "PosteriorDrawSet",
    "PosteriorPredictiveCheck",
    "PosteriorSummarizer",
    "PosteriorSummary",
    "choice_probabilities",
    "summarize_probabilities",
]
