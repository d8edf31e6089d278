"""Synthetic OHLC charts for demos and tests"""

from typing import Optional

import numpy as np
import pandas as pd

from .chart import Chart


def generate_random_walk(
    num_samples: int = 500,
    base_price: float = 100.0,
    volatility: float = 0.01,
    drift: float = 0.0005,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """
    Generate a geometric random walk with open/high/low/close columns.

    Args:
        num_samples: Number of time steps
        base_price: Starting price
        volatility: Standard deviation of the per-step returns
        drift: Mean per-step return
        seed: Seed for numpy's generator

    Returns:
        DataFrame indexed by timestamp (daily frequency)
    """
    rng = np.random.default_rng(seed)

    returns = rng.normal(drift, volatility, num_samples)
    close = base_price * np.exp(np.cumsum(returns))
    open_ = np.concatenate(([base_price], close[:-1]))

    noise = np.abs(rng.normal(0.0, volatility / 2, (num_samples, 2))) * close[:, None]

    df = pd.DataFrame({
        'open': open_,
        'high': np.maximum(open_, close) + noise[:, 0],
        'low': np.minimum(open_, close) - noise[:, 1],
        'close': close,
    })
    df.index = pd.date_range(start='2024-01-01', periods=num_samples, freq='D')
    return df


def random_walk_chart(num_samples: int = 500, seed: Optional[int] = None, **kwargs) -> Chart:
    """Random walk as a Chart (channels close/high/low/open)"""
    return Chart.from_frame(generate_random_walk(num_samples, seed=seed, **kwargs))
