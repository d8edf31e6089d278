"""
Tests for the RPROP training loop and its background thread.
"""

import math
import threading
import time

import pytest

from rprop_forecast.data import DataHandler, DataPattern, random_walk_chart
from rprop_forecast.exceptions import (
    ConfigError,
    DimensionError,
    NotReadyError,
    NumericDegeneracyError,
)
from rprop_forecast.linalg import Vector
from rprop_forecast.model import Network
from rprop_forecast.training import Trainer, TrainingProgress, TrainingState
from rprop_forecast.utils import MetricsLogger


def chart_trainer(estimate_length=3, num_points=40, seed=1):
    chart = random_walk_chart(num_points, seed=seed)
    handler = DataHandler()
    handler.load(chart, 'close')

    network = Network(estimate_length, [4], handler.channel_count, generator=0)
    trainer = Trainer(network)
    trainer.set_patterns(handler.training_patterns(estimate_length))
    return trainer


def single_pattern_trainer():
    network = Network(2, [3], 1, generator=0)
    trainer = Trainer(network)
    trainer.set_patterns([DataPattern(Vector([0.5, -0.5]), Vector([0.8]))])
    return trainer


def weights_of(network):
    return [layer.weights.copy() for layer in network]


def test_backpropagation_error():
    """Pattern error is 0.5 * |target - output|^2"""
    trainer = single_pattern_trainer()
    pattern = trainer.patterns[0]

    output = trainer.network.feed(pattern.input)
    error = trainer.backpropagation(output, pattern)

    assert error == pytest.approx(0.5 * (0.8 - output[0]) ** 2)
    for layer in trainer.network:
        assert layer.gradients.current.sign().data.abs().sum() > 0


def test_training_reduces_error():
    """RPROP moves the single output towards its target"""
    trainer = single_pattern_trainer()

    first = trainer.train(1).error
    last = trainer.train(100).error

    assert last < first
    assert abs(trainer.network.feed(Vector([0.5, -0.5]))[0] - 0.8) < 0.1


def test_train_on_chart_patterns():
    trainer = chart_trainer()

    progress = trainer.train(5)

    assert progress.epoch == 5
    assert progress.max_epochs == 5
    assert progress.state is TrainingState.STOPPED
    assert progress.fraction == 1.0
    assert math.isfinite(progress.error)
    assert trainer.last_error is None


def test_priority_replays_patterns():
    """A pattern of priority p contributes p times to the gradient"""
    once = single_pattern_trainer()
    twice = single_pattern_trainer()
    pattern = twice.patterns[0]
    twice.set_patterns([DataPattern(pattern.input, pattern.target, priority=2)])

    once.train(1)
    twice.train(1)

    g_once = once.network.last().gradients.previous
    g_twice = twice.network.last().gradients.previous
    assert g_twice.allclose(g_once.scale(2.0))


def test_train_epoch_without_patterns():
    trainer = Trainer(Network(2, [3], 1, generator=0))

    with pytest.raises(NotReadyError):
        trainer.train_epoch()


def test_dimension_error_stops_training():
    """A malformed pattern ends the loop without touching the weights"""
    trainer = single_pattern_trainer()
    before = weights_of(trainer.network)
    trainer.set_patterns([DataPattern(Vector([1.0, 2.0, 3.0]), Vector([0.5]))])

    progress = trainer.train(10)

    assert progress.epoch == 0
    assert progress.state is TrainingState.STOPPED
    assert isinstance(trainer.last_error, DimensionError)
    assert weights_of(trainer.network) == before


def test_failed_epoch_discards_partial_gradients():
    """Gradients accumulated before the failure are dropped"""
    trainer = single_pattern_trainer()
    trainer.train(2)
    before = weights_of(trainer.network)

    good = trainer.patterns[0]
    trainer.set_patterns([good, DataPattern(Vector([1.0]), Vector([0.5]))])
    trainer.train(1)

    assert weights_of(trainer.network) == before
    for layer in trainer.network:
        assert layer.gradients.current.data.abs().sum() == 0


def test_numeric_degeneracy_skips_epoch(monkeypatch):
    """A degenerate epoch is logged and training continues"""
    trainer = single_pattern_trainer()

    def degenerate(layer):
        raise NumericDegeneracyError("step computation failed")

    monkeypatch.setattr(trainer.rule, 'compute', degenerate)
    progress = trainer.train(3)

    assert progress.epoch == 3
    assert isinstance(trainer.last_error, NumericDegeneracyError)


def test_invalid_epoch_count():
    trainer = single_pattern_trainer()

    with pytest.raises(ConfigError):
        trainer.train(-1)
    with pytest.raises(ConfigError):
        Trainer(trainer.network, log_interval=0)


def test_metrics_logger_receives_every_epoch(tmp_path):
    log_file = tmp_path / "metrics.jsonl"
    trainer = single_pattern_trainer()
    trainer.metrics_logger = MetricsLogger(log_file, echo_interval=1000)

    trainer.train(4)

    lines = log_file.read_text().splitlines()
    assert len(lines) == 4
    assert '"error"' in lines[0] and '"mean_step"' in lines[0]


def test_background_training_start_stop():
    """start is idempotent while running; stop joins the thread"""
    trainer = chart_trainer()

    assert trainer.start(10 ** 6) is True
    assert trainer.is_running()
    assert trainer.start(5) is False
    assert trainer.current_progress().max_epochs == 10 ** 6

    time.sleep(0.05)
    trainer.stop()

    progress = trainer.current_progress()
    assert not trainer.is_running()
    assert progress.state is TrainingState.STOPPED
    assert progress.epoch < 10 ** 6


def test_concurrent_start_starts_one_thread():
    """Simultaneous start calls: one starts, the others are no-ops"""
    trainer = chart_trainer()
    barrier = threading.Barrier(8)
    results = []
    errors = []

    def call_start():
        barrier.wait()
        try:
            results.append(trainer.start(10 ** 6))
        except Exception as e:
            errors.append(e)

    callers = [threading.Thread(target=call_start) for _ in range(8)]
    for caller in callers:
        caller.start()
    for caller in callers:
        caller.join()
    trainer.stop()

    assert errors == []
    assert sorted(results) == [False] * 7 + [True]


def test_weights_frozen_after_stop():
    trainer = chart_trainer()
    trainer.start(10 ** 6)
    time.sleep(0.05)
    trainer.stop()

    before = weights_of(trainer.network)
    time.sleep(0.05)

    assert weights_of(trainer.network) == before


def test_inference_during_training():
    """Forward passes from another thread see consistent weights"""
    trainer = chart_trainer()
    x = trainer.patterns[-1].input
    trainer.start(10 ** 6)
    try:
        for _ in range(20):
            output = trainer.network.feed(x)
            assert 0.0 < output[0] < 1.0
    finally:
        trainer.stop()


def test_stop_before_start_is_noop():
    trainer = chart_trainer()

    trainer.stop()

    assert trainer.current_progress().state is TrainingState.IDLE


def test_start_requires_fresh_trainer_with_patterns():
    trainer = Trainer(Network(2, [3], 1, generator=0))
    with pytest.raises(NotReadyError):
        trainer.start(5)

    trainer = single_pattern_trainer()
    trainer.train(1)
    with pytest.raises(NotReadyError):
        trainer.start(5)


def test_progress_fraction():
    assert TrainingProgress(5, 20, 0.1, TrainingState.RUNNING).fraction == 0.25
    assert TrainingProgress(0, 0, math.nan, TrainingState.IDLE).fraction == 0.0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
