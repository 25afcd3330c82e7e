"""
Synthetic data for the regression workflow.
Predictors are standard normal draws; the response is a fixed linear
combination of the predictors plus independent normal noise.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class DatasetSpec:
    """Linear data-generating process: y = intercept + sum(w * x) + noise."""
    coefficients: Dict[str, float] = field(default_factory=dict)
    intercept: float = 0.0
    noise_sd: float = 1.0
    response: str = "y"

    @property
    def predictors(self) -> List[str]:
        return list(self.coefficients)


REGRESSION_SPECS: Dict[str, DatasetSpec] = {
    "Regression1": DatasetSpec(
        coefficients={"x1": 2.0, "x2": -0.5},
        intercept=0.1,
    ),
    "Regression2": DatasetSpec(
        coefficients={"x1": 0.8, "x2": 1.5, "x3": -1.2},
        intercept=1.0,
        noise_sd=0.5,
    ),
}


def generate_dataset(
    spec: DatasetSpec,
    n: int,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None
) -> pd.DataFrame:
    """
    Draw one dataset.

    Args:
        spec: Data-generating process.
        n: Number of observations.
        seed: Seed for a fresh generator; ignored when rng is given.
        rng: Generator to draw from.

    Returns:
        DataFrame with the predictors in declared order, then the response.
    """
    if n < 1:
        raise ValueError(f"Need at least one observation, got n={n}")
    if rng is None:
        rng = np.random.default_rng(seed)

    data = {name: rng.standard_normal(n) for name in spec.predictors}

    y = np.full(n, spec.intercept, dtype=float)
    for name, weight in spec.coefficients.items():
        y += weight * data[name]
    y += rng.normal(0.0, spec.noise_sd, n)

    data[spec.response] = y
    return pd.DataFrame(data)


def generate_datasets(
    specs: Mapping[str, DatasetSpec],
    n: int,
    seed: Optional[int] = None
) -> Dict[str, pd.DataFrame]:
    """
    Draw independent datasets from one generator.
    Reproducible only when seed is given.
    """
    rng = np.random.default_rng(seed)
    return {name: generate_dataset(spec, n, rng=rng) for name, spec in specs.items()}
