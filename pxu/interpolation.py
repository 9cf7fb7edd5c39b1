"""
Continuation of the momentum along prescribed curves of the Zhukovsky variable xp.

The PInterpolator moves a point from a simple starting momentum to a bound state configuration,
the follow() function underlies it and is also used to trace the momentum-plane images of cuts.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

import numpy as np

from pxu.core import kinematics
from pxu.core.kinematics import CouplingConstants, SheetData
from pxu.core.solvers import AbstractNewtonSolver, NewtonSolver

logger = logging.getLogger(__name__)


def follow(target: Callable[[float], complex], start: float, end: float, p0: complex,
           consts: CouplingConstants, max_step: float, e_branch: int = 1,
           solver: Optional[AbstractNewtonSolver] = None, max_steps: int = 2000,
           min_step: Optional[float] = None) -> tuple[list[complex], float]:
    """
    Continue the momentum p along the curve xp_on_sheet(p, 1) = target(s).

    The parameter s is advanced from start towards end in steps of at most max_step. Whenever the
    root finder fails, the step is halved and retried; the continuation stops when the step drops
    below min_step (default max_step / 1024) or after max_steps attempts. Returns the momenta
    along the curve, starting with p0, and the final value of s.
    """
    if solver is None:
        solver = NewtonSolver()
        solver.max_step = 0.1
    if min_step is None:
        min_step = max_step / 1024
    sheet_data = SheetData(e_branch=e_branch)

    def jac(p: complex) -> complex:
        return kinematics.dxp_on_sheet_dp(p, 1, consts, sheet_data)

    path = [complex(p0)]
    s = start
    step = max_step
    nsteps = 0
    while s != end and nsteps < max_steps:
        nsteps += 1
        s_next = end if abs(end - s) <= step else s + math.copysign(step, end - s)
        z = target(s_next)

        def f(p: complex) -> complex:
            return kinematics.xp_on_sheet(p, 1, consts, sheet_data) - z

        try:
            p = solver.solve(f, path[-1], jac)
        except np.linalg.LinAlgError:
            step /= 2
            if step < min_step:
                break
            continue
        path.append(p)
        s = s_next
        # recover the step size after a successful step
        step = min(2 * step, max_step)
    return path, s


class PInterpolator:
    """
    Tracks the momentum p of a point with xp(p, 1) = xp(q, m) while the real parameters (q, m) move.

    Starting from q = p, m = 1 (where p is the trivial solution), the mass parameter and the
    momentum parameter can be moved to a bound state of m constituents with total momentum q.
    """

    def __init__(self, p: float, consts: CouplingConstants) -> None:
        #: the coupling constants
        self.consts = consts
        #: the momentum parameter of the target xp(q, m)
        self.q = float(p)
        #: the mass parameter of the target xp(q, m)
        self.m = 1.0
        #: the tracked momentum
        self.p = complex(p)
        #: maximum change of m per step
        self.max_step_m = 0.1
        #: maximum change of q per step
        self.max_step_q = 0.002
        #: maximum number of steps per move
        self.max_steps = 2000
        #: remaining discrepancy that is tolerated at the end of a move
        self.tolerance = 1e-6
        # the momenta visited during the last move
        self._contour = [self.p]

    def xp(self) -> complex:
        """the target value of xp"""
        return complex(kinematics.xp(self.q, self.m, self.consts))

    def goto_m(self, m: float) -> PInterpolator:
        """move the mass parameter to m, keeping q fixed"""
        q = self.q
        path, reached = follow(lambda m_: kinematics.xp(q, m_, self.consts), self.m, float(m),
                               self.p, self.consts, self.max_step_m, max_steps=self.max_steps)
        self._update(path, "m", self.m, reached, m)
        self.m = reached
        return self

    def goto_p(self, q: float) -> PInterpolator:
        """move the momentum parameter to q, keeping m fixed"""
        m = self.m
        path, reached = follow(lambda q_: kinematics.xp(q_, m, self.consts), self.q, float(q),
                               self.p, self.consts, self.max_step_q, max_steps=self.max_steps)
        self._update(path, "p", self.q, reached, q)
        self.q = reached
        return self

    def _update(self, path: list[complex], name: str, start: float, reached: float, end: float) -> None:
        self._contour = path
        self.p = path[-1]
        if abs(reached - end) > self.tolerance:
            logger.warning("Degraded construction: could not move %s from %.4f to %.4f, stuck at %.6f"
                           " (p = %.6f%+.6fj)", name, start, end, reached, self.p.real, self.p.imag)

    def contour(self) -> list[complex]:
        """the momenta visited during the last move"""
        return list(self._contour)
