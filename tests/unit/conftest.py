"""Shared fixtures: contours are expensive to build, so they are built once per coupling pair."""

from typing import Callable

import pytest

from pxu.contours.contours import Contours
from pxu.core.kinematics import CouplingConstants


@pytest.fixture(scope="session")
def build_contours() -> Callable[[float, int], Contours]:
    """Build (or get the already built) contours on the momentum ranges -1, 0 and 1."""
    cache: dict[tuple[float, int], Contours] = {}

    def build(h: float, k: int) -> Contours:
        if (h, k) not in cache:
            contours = Contours()
            contours.settings.p_range_min = -1
            contours.settings.p_range_max = 1
            cache[(h, k)] = contours.build(0, CouplingConstants(h, k))
        return cache[(h, k)]

    return build
