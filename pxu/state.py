"""
Bound states of several points, chained by the closure relation xm of one point = xp of the next.
"""

from __future__ import annotations

import logging
import math

from pxu.contours.contours import Contours
from pxu.contours.cut import Component
from pxu.core import kinematics
from pxu.core.kinematics import CouplingConstants
from pxu.core.profiling import profile
from pxu.core.types import DataDict
from pxu.interpolation import PInterpolator
from pxu.point import Point

logger = logging.getLogger(__name__)


class State:
    """
    A chain of points. While locked, moving one point re-solves all the others such that
    xm_on_sheet(points[i]) == xp_on_sheet(points[i + 1]) for every adjacent pair.
    """

    #: number of stages in which a new constituent is moved onto the chain during construction
    construction_stages = 4
    #: the first constituent is moved to Re u = us + u_offset before the chain is built
    u_offset = 3.0
    #: maximum change of Re u per stage of that move
    u_step = 0.25

    def __init__(self, m: int, consts: CouplingConstants) -> None:
        if m < 1:
            raise ValueError(f"A state needs at least one point, got m = {m}")
        # the first constituent carries the xp of a bound state of m constituents
        interpolator = PInterpolator(0.025, consts).goto_m(m).goto_p(0.025 + 0.022 * (m - 1))
        #: the points of the chain
        self.points = [Point(interpolator.p, consts)]
        #: if False, updates propagate along the chain
        self.unlocked = False
        self._move_to_u0(self.points[0], consts)
        for _ in range(1, m):
            previous = self.points[-1]
            pt = previous.copy()
            xp0 = pt.xp
            target = complex(kinematics.xm_on_sheet(previous.p, 1, consts, previous.sheet_data))
            for stage in range(1, self.construction_stages + 1):
                xp = xp0 + stage / self.construction_stages * (target - xp0)
                if not pt.update(Component.XP, xp, consts):
                    logger.warning("Degraded construction: could not attach point %d of %d (xp = %s)",
                                   len(self.points) + 1, m, pt.xp)
                    break
            self.points.append(pt)

    def _move_to_u0(self, pt: Point, consts: CouplingConstants) -> None:
        # shift Re u in bounded stages, keeping Im u fixed
        u0 = kinematics.us(consts) + self.u_offset
        for _ in range(2 * int(abs(u0 - pt.u.real) / self.u_step) + 1):
            du = u0 - pt.u.real
            u = pt.u.real + math.copysign(min(abs(du), self.u_step), du)
            if not pt.update(Component.U, complex(u, pt.u.imag), consts) or abs(u0 - pt.u.real) < 0.01:
                break
        if abs(u0 - pt.u.real) >= 0.01:
            logger.warning("Degraded construction: could not find u = %.3f for the first point (u = %s)",
                           u0, pt.u)

    @classmethod
    def from_points(cls, points: list[Point], unlocked: bool = False) -> State:
        """a state made of the given points, without checking the closure relation"""
        if not points:
            raise ValueError("A state needs at least one point")
        state = cls.__new__(cls)
        state.points = points
        state.unlocked = unlocked
        return state

    def __len__(self) -> int:
        return len(self.points)

    @profile
    def update(self, active_point: int, component: Component, new_value: complex, contours: Contours,
               consts: CouplingConstants) -> bool:
        """
        Move one point and, while locked, re-solve the rest of the chain outward from it.

        Every point is updated even if an earlier update failed, there is no rollback.
        Returns True if all point updates succeeded.
        """
        result = self.points[active_point].update(component, new_value, consts, contours)
        if not self.unlocked:
            for i in range(active_point + 1, len(self.points)):
                previous = self.points[i - 1]
                xp = complex(kinematics.xm_on_sheet(previous.p, 1, consts, previous.sheet_data))
                result = self.points[i].update(Component.XP, xp, consts, contours) and result
            for i in reversed(range(active_point)):
                following = self.points[i + 1]
                xm = complex(kinematics.xp_on_sheet(following.p, 1, consts, following.sheet_data))
                result = self.points[i].update(Component.XM, xm, consts, contours) and result
        if not result:
            logger.debug("State update of point %d in %s failed", active_point, component.value)
        return result

    def goto(self, active_point: int, component: Component, new_value: complex, contours: Contours,
             consts: CouplingConstants, steps: int = 8) -> bool:
        """move the active point in the given number of equal stages, stop at the first failure"""
        start = self.points[active_point].get(component)
        for step in range(1, steps + 1):
            value = start + step / steps * (complex(new_value) - start)
            if not self.update(active_point, component, value, contours, consts):
                return False
        return True

    def p(self) -> complex:
        """the total momentum"""
        return sum((pt.p for pt in self.points), 0j)

    def en(self, consts: CouplingConstants) -> complex:
        """the total energy"""
        return sum((pt.en(consts) for pt in self.points), 0j)

    def copy(self) -> State:
        return State.from_points([pt.copy() for pt in self.points], self.unlocked)

    def save(self) -> DataDict:
        return {
            "points": [pt.save() for pt in self.points],
            "unlocked": self.unlocked,
        }

    @classmethod
    def load(cls, data: DataDict, consts: CouplingConstants) -> State:
        points = [Point.load(pt, consts) for pt in data["points"]]
        return cls.from_points(points, bool(data.get("unlocked", False)))


class SavedState:
    """A state together with the coupling constants it was computed for."""

    def __init__(self, state: State, consts: CouplingConstants) -> None:
        self.state = state
        self.consts = consts

    def save(self) -> DataDict:
        return {
            "consts": self.consts.save(),
            "state": self.state.save(),
        }

    @classmethod
    def load(cls, data: DataDict) -> SavedState:
        consts = CouplingConstants.load(data["consts"])
        return cls(State.load(data["state"], consts), consts)
