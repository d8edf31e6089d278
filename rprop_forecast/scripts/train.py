#!/usr/bin/env python3
"""
Training script for RPROP Forecast.

Trains on a synthetic random walk in the background, follows the progress
with a progress bar and prints the final estimate.

Usage:
    python -m rprop_forecast.scripts.train --estimate_length 5 --hidden_layers 8,4
"""

import argparse
import time
from typing import List, Optional

import pandas as pd
from tqdm import tqdm

from rprop_forecast.config import ForecastConfig
from rprop_forecast.data import Chart, random_walk_chart
from rprop_forecast.forecaster import Forecaster
from rprop_forecast.utils import MetricsLogger, setup_logger


def parse_layers(text: str) -> List[int]:
    """'8, 4' -> [8, 4]; empty string -> no hidden layers"""
    text = text.replace(' ', '')
    if not text:
        return []
    return [int(size) for size in text.split(',')]


def main(argv: Optional[List[str]] = None) -> float:
    parser = argparse.ArgumentParser(description='Train an RPROP forecasting network')
    parser.add_argument('--estimate_length', type=int, default=5,
                      help='Points per channel fed into the network')
    parser.add_argument('--hidden_layers', type=str, default='10',
                      help='Comma separated hidden layer sizes')
    parser.add_argument('--num_epochs', type=int, default=500,
                      help='Number of training epochs')
    parser.add_argument('--increase_factor', type=float, default=1.2,
                      help='RPROP step growth factor')
    parser.add_argument('--decrease_factor', type=float, default=0.5,
                      help='RPROP step shrink factor')
    parser.add_argument('--num_points', type=int, default=200,
                      help='Length of the synthetic chart')
    parser.add_argument('--data_file', type=str, default=None,
                      help='CSV file with one numeric column per channel (default: synthetic data)')
    parser.add_argument('--output_channel', type=str, default='close',
                      help='Channel to estimate')
    parser.add_argument('--seed', type=int, default=None,
                      help='Seed for data generation and weight initialization')
    parser.add_argument('--metrics_file', type=str, default=None,
                      help='Append per-epoch metrics to this JSON-lines file')

    args = parser.parse_args(argv)

    # Setup logger
    logger = setup_logger()
    logger.info("Starting RPROP Forecast training")

    # Create config
    config = ForecastConfig(
        estimate_length=args.estimate_length,
        hidden_layers=parse_layers(args.hidden_layers),
        increase_factor=args.increase_factor,
        decrease_factor=args.decrease_factor,
        num_epochs=args.num_epochs,
        output_channel=args.output_channel,
        seed=args.seed,
    )
    logger.info(f"Config: {config}")

    metrics_logger = None
    if args.metrics_file:
        metrics_logger = MetricsLogger(args.metrics_file, echo_interval=config.log_interval)

    # Load data
    if args.data_file:
        chart = Chart.from_frame(pd.read_csv(args.data_file))
    else:
        chart = random_walk_chart(args.num_points, seed=args.seed)
    logger.info(f"Chart: {chart}")

    forecaster = Forecaster(config, metrics_logger=metrics_logger)
    forecaster.load_chart(chart)

    # Train in the background and follow the progress
    forecaster.start()
    try:
        with tqdm(total=config.num_epochs, desc="Training") as pbar:
            while forecaster.is_running():
                progress = forecaster.current_progress()
                pbar.update(progress.epoch - pbar.n)
                pbar.set_postfix({'error': f"{progress.error:.6f}"})
                time.sleep(0.1)
            pbar.update(forecaster.current_progress().epoch - pbar.n)
    finally:
        forecaster.stop()

    estimate = forecaster.estimate()
    last_value = chart.last()[config.output_channel]
    logger.info(
        f"Last {config.output_channel}: {last_value:.4f}, estimate "
        f"{config.estimate_length} steps ahead: {estimate:.4f}"
    )
    logger.info("Training complete!")
    return estimate


if __name__ == '__main__':
    main()
