"""
tests/conftest.py
=================
Shared fixtures for the panel-string simulation tests.

``ScriptedRng`` stands in for ``numpy.random.Generator`` where a test needs
to force an exact draw (which panel faults, how much a repair gains).  Each
method pops from its own queue and falls back to a fixed default once the
queue is empty.
"""

from __future__ import annotations

import numpy as np
import pytest


class ScriptedRng:
    """Deterministic replacement for the three Generator methods in use.

    Args:
        uniform:   Fractions in [0, 1) mapped onto the requested band:
                   ``uniform(a, b) = a + f · (b − a)``. Default 0.5.
        random:    Values returned by ``random()``. Default 0.99, which
                   suppresses fault injection.
        integers:  Values returned by ``integers(n)``. Default 0.
    """

    def __init__(self, uniform=(), random=(), integers=()):
        self._uniform = list(uniform)
        self._random = list(random)
        self._integers = list(integers)

    def uniform(self, low, high):
        frac = self._uniform.pop(0) if self._uniform else 0.5
        return low + frac * (high - low)

    def random(self):
        return self._random.pop(0) if self._random else 0.99

    def integers(self, n):
        value = self._integers.pop(0) if self._integers else 0
        assert 0 <= value < n
        return value


@pytest.fixture
def scripted():
    """Factory for :class:`ScriptedRng`."""
    return ScriptedRng


@pytest.fixture
def seeded():
    """Factory for seeded numpy generators."""
    return np.random.default_rng
