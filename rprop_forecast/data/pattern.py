"""Training patterns for the network"""

from dataclasses import dataclass

from ..linalg import Vector


@dataclass(frozen=True)
class DataPattern:
    """
    One training example: input vector, target vector and how many times
    the example is replayed per epoch.
    """

    input: Vector
    target: Vector
    priority: int = 1


def pattern_priority(estimate_length: int, patterns_remaining: int) -> int:
    """
    Replay count of a pattern.

    Later (more recent) patterns have fewer patterns remaining after them
    and are replayed more often:

        max(1, (2 * estimate_length) // patterns_remaining)
    """
    return max(1, (2 * estimate_length) // patterns_remaining)
