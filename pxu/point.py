from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np

from pxu.contours.contours import Contours, Crossing
from pxu.contours.cut import Component, Cut, CutKind
from pxu.core import kinematics
from pxu.core.kinematics import CouplingConstants, SheetData, UBranch
from pxu.core.profiling import profile
from pxu.core.solvers import NewtonSolver, SpuriousRootError
from pxu.core.types import DataDict

logger = logging.getLogger(__name__)


class Point:
    """
    A single excitation, given by its momentum p and the sheet of the Riemann surface it lives on.

    The charts xp, xm and u are always the images of p under the kinematics of the current sheet.
    """

    #: window (max. |real part|, max. |imaginary part|) of accepted changes of the momentum per step
    max_displacement = (0.125, 0.25)
    #: roots closer than this to an integer momentum are rejected
    min_distance_to_integer = 0.005
    #: offsets of the initial guesses of the root finder relative to the current momentum
    guess_offsets = (0, -0.01, 0.01, -0.05, 0.05, -0.1, 0.1)
    #: maximum number of steps of a single update, each step crosses at most one cut
    max_steps = 100

    def __init__(self, p: complex, consts: CouplingConstants) -> None:
        p = complex(p)
        log_branch_m = math.floor(p.real)
        if log_branch_m >= 0:
            u_branch = UBranch.OUTSIDE
        elif log_branch_m == -1:
            u_branch = UBranch.BETWEEN
        else:
            u_branch = UBranch.INSIDE
        #: the discrete sheet labels
        self.sheet_data = SheetData(0, log_branch_m, 1, (u_branch, u_branch), (1, 1))
        #: the root finder used for moving the point
        self.solver = NewtonSolver()
        self._set(p, self.sheet_data, consts)

    @classmethod
    def on_sheet(cls, p: complex, sheet_data: SheetData, consts: CouplingConstants) -> Point:
        """the point with momentum p on the given sheet"""
        pt = cls.__new__(cls)
        pt.solver = NewtonSolver()
        pt._set(complex(p), sheet_data.copy(), consts)
        return pt

    def _set(self, p: complex, sheet_data: SheetData, consts: CouplingConstants) -> None:
        self.sheet_data = sheet_data
        #: the momentum
        self.p = p
        #: the Zhukovsky variables
        self.xp = complex(kinematics.xp_on_sheet(p, 1, consts, sheet_data))
        self.xm = complex(kinematics.xm_on_sheet(p, 1, consts, sheet_data))
        #: the rapidity
        self.u = complex(kinematics.u_on_sheet(p, consts, sheet_data))

    def get(self, component: Component) -> complex:
        """the value of the point in the given chart"""
        if component is Component.P:
            return self.p
        if component is Component.XP:
            return self.xp
        if component is Component.XM:
            return self.xm
        return self.u

    def en(self, consts: CouplingConstants) -> complex:
        """the energy of the point, computed from its Zhukovsky variables"""
        return complex(kinematics.en_of_x(self.xp, self.xm, consts))

    def copy(self) -> Point:
        pt = Point.__new__(Point)
        pt.sheet_data = self.sheet_data.copy()
        pt.solver = NewtonSolver()
        pt.p, pt.xp, pt.xm, pt.u = self.p, self.xp, self.xm, self.u
        return pt

    def same_sheet(self, other: Point, component: Component) -> bool:
        """whether the other point lives on a sheet that looks the same in the given chart"""
        return self.sheet_data.is_same(other.sheet_data, component)

    def __repr__(self) -> str:
        return f"Point(p={self.p:.6f}, {self.sheet_data})"

    @profile
    def update(self, component: Component, new_value: complex, consts: CouplingConstants,
               contours: Optional[Contours] = None, crossings: Optional[list[Crossing]] = None) -> bool:
        """
        Move the chart 'component' of the point in a straight line to new_value.

        The move is split into steps that cross at most one cut each, the sheet data is updated
        for every crossed cut. Known crossings of the whole move may be passed instead of the
        contours. Returns False and leaves the point at the last successful step on failure.
        """
        new_value = complex(new_value)
        if new_value == self.get(component):
            return True
        query = crossings is None and contours is not None
        pending = [] if crossings is None else list(crossings)
        for _ in range(self.max_steps):
            current_value = self.get(component)
            if query:
                assert contours is not None
                pending = contours.get_crossed_cuts(self, component, new_value, consts)
            # never cross more than one cut per step
            if len(pending) > 1:
                t = (pending[0].t + pending[1].t) / 2
                next_value = current_value + t * (new_value - current_value)
            else:
                t = 1.0
                next_value = new_value
            cuts = pending[0].cuts if pending else []
            if not self._step(component, next_value, cuts, consts):
                return False
            if next_value == new_value:
                return True
            if not query:
                # the remaining crossings, relative to the rest of the move
                pending = [Crossing((c.t - t) / (1 - t), c.cuts) for c in pending[1:]]
        logger.debug("Could not move %s of %s to %s within %d steps", component.value, self,
                     new_value, self.max_steps)
        return False

    def _crossed(self, sheet_data: SheetData, cut: Cut) -> SheetData:
        # the sheet data after crossing the cut, from the current side of the cut
        typ = cut.typ
        assert typ.component not in (Component.P, Component.U), f"Invalid cut type {typ}"
        sheet_data = sheet_data.copy()
        if typ.kind is CutKind.E:
            sheet_data.e_branch = -sheet_data.e_branch
        elif typ.kind is CutKind.LOG:
            if typ.component is Component.XP:
                sheet_data.log_branch_p += 1 if self.xp.imag >= 0 else -1
            else:
                sheet_data.log_branch_m += 1 if self.xm.imag <= 0 else -1
        elif typ.kind in (CutKind.U_SHORT_SCALLION, CutKind.U_SHORT_KIDNEY):
            up, um = sheet_data.u_branch
            if typ.kind is CutKind.U_SHORT_SCALLION:
                cross = UBranch.cross_scallion
            else:
                cross = UBranch.cross_kidney
            if typ.component is Component.XP:
                sheet_data.u_branch = (cross(up), um)
            else:
                sheet_data.u_branch = (up, cross(um))
        elif typ.kind is CutKind.U_LONG_POSITIVE:
            sign_p, sign_m = sheet_data.im_x_sign
            if typ.component is Component.XP:
                sheet_data.im_x_sign = (-sign_p, sign_m)
            else:
                sheet_data.im_x_sign = (sign_p, -sign_m)
        logger.debug("Intersection with %s: %s", typ, sheet_data)
        return sheet_data

    def _solve(self, component: Component, value: complex, sheet_data: SheetData, guess: complex,
               consts: CouplingConstants) -> complex:
        # the momentum on the given sheet for which the chart takes the value
        if component is Component.P:
            return value
        if component is Component.XP:
            def f(p: complex) -> complex:
                return kinematics.xp_on_sheet(p, 1, consts, sheet_data) - value

            def jac(p: complex) -> complex:
                return kinematics.dxp_on_sheet_dp(p, 1, consts, sheet_data)
        elif component is Component.XM:
            def f(p: complex) -> complex:
                return kinematics.xm_on_sheet(p, 1, consts, sheet_data) - value

            def jac(p: complex) -> complex:
                return kinematics.dxm_on_sheet_dp(p, 1, consts, sheet_data)
        else:
            def f(p: complex) -> complex:
                return kinematics.u_on_sheet(p, consts, sheet_data) - value

            def jac(p: complex) -> complex:
                return kinematics.du_on_sheet_dp(p, consts, sheet_data)
        return self.solver.solve(f, guess, jac)

    def _check_root(self, p: complex) -> None:
        dp = p - self.p
        max_re, max_im = self.max_displacement
        if abs(dp.real) > max_re or abs(dp.imag) > max_im:
            raise SpuriousRootError(f"Momentum jump too large: {self.p:.6f} -> {p:.6f}")
        if abs(p - round(p.real)) < self.min_distance_to_integer:
            raise SpuriousRootError(f"Momentum {p:.6f} too close to an integer")

    def _step(self, component: Component, value: complex, cuts: list[Cut],
              consts: CouplingConstants) -> bool:
        sheet_data = self.sheet_data
        for cut in cuts:
            sheet_data = self._crossed(sheet_data, cut)
        candidates = []
        for offset in self.guess_offsets:
            try:
                p = complex(self._solve(component, value, sheet_data, self.p + offset, consts))
                self._check_root(p)
            except np.linalg.LinAlgError as err:
                logger.debug("Root search from %s failed: %s", self.p + offset, err)
                continue
            candidates.append(Point.on_sheet(p, sheet_data, consts))
            if component is Component.P:
                break
        if not candidates:
            logger.debug("Could not move %s of %s to %s", component.value, self, value)
            return False
        # the root that moves the Zhukovsky variables the least
        best = min(candidates, key=lambda pt: abs(pt.xp - self.xp)**2 + abs(pt.xm - self.xm)**2)
        self.sheet_data = best.sheet_data
        self.p, self.xp, self.xm, self.u = best.p, best.xp, best.xm, best.u
        return True

    def save(self) -> DataDict:
        return {
            "p": self.p,
            "sheet_data": self.sheet_data.save(),
        }

    @classmethod
    def load(cls, data: DataDict, consts: CouplingConstants) -> Point:
        return cls.on_sheet(complex(data["p"]), SheetData.load(data["sheet_data"]), consts)
