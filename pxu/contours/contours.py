"""
The set of branch cuts of all charts for one pair of coupling constants.

The cuts are generated incrementally: Contours.update() executes one construction command per
call, so that the construction can be interleaved with progress reporting. After the construction
is complete, the contours are read-only and can be shared.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from functools import partial
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np

from pxu.core import kinematics
from pxu.core.kinematics import BranchPointType, CouplingConstants, UBranch
from pxu.core.profiling import profile
from pxu.core.solvers import NewtonSolver, ScipyNewtonSolver
from pxu.core.types import Axes, ComplexArray
from pxu.interpolation import follow

from .cut import Component, Cut, CutKind, CutType, CutVisibilityCondition, period

if TYPE_CHECKING:
    from pxu.point import Point

logger = logging.getLogger(__name__)


class ContoursSettings:
    """
    Tolerances and resolution of the contour construction.
    """

    def __init__(self) -> None:
        #: smallest momentum range for which cuts are generated
        self.p_range_min = -3
        #: largest momentum range for which cuts are generated
        self.p_range_max = 3
        #: cuts extending to infinity are truncated at this distance
        self.infinity = 100.0
        #: step size along the traced energy cut in the momentum plane
        self.e_cut_step = 0.01
        #: tracing in the momentum plane stops beyond this imaginary part
        self.max_im_p = 1.5
        #: number of samples of the x-plane curves (scallion and kidney)
        self.curve_samples = 200
        #: maximum step of the momentum parameter when tracing x-plane curves in the p-plane
        self.q_step = 0.005
        #: maximum step of the mass parameter when moving to the x-plane curves
        self.m_step = 0.1
        #: maximum step of log|xp| when tracing the real xp-axis in the p-plane
        self.log_x_step = 0.02
        #: maximum number of vertices of a cut traced in the momentum plane
        self.max_points = 2000


class Crossing:
    """The cuts crossed at the parameter t along a move."""

    def __init__(self, t: float, cuts: list[Cut]) -> None:
        #: position along the move, 0 is the start and 1 the end
        self.t = t
        #: the cuts crossed at t
        self.cuts = cuts

    def __repr__(self) -> str:
        return f"Crossing(t={self.t:.6f}, cuts={[cut.typ for cut in self.cuts]})"


def _unwrapped_log(z: ComplexArray) -> ComplexArray:
    # the logarithm, continuous along the path z
    return np.log(np.abs(z)) + 1j * np.unwrap(np.angle(z))


def _u_of_x_along(x: ComplexArray, consts: CouplingConstants) -> ComplexArray:
    # the rapidity u along a continuous path of xp, on the sheet with log_branch_p = 0
    return x + 1 / x - 2 * consts.kslash() / consts.h * _unwrapped_log(x) - 1j / consts.h


def _e_image_visibility(p_range: int) -> tuple[list[CutVisibilityCondition], ...]:
    """the visibility of the images of the energy cut in the xp-, xm- and u-plane"""
    cond = CutVisibilityCondition
    log = cond.log_branch(p_range)
    if p_range > 0:
        return ([log, cond.xm_outside()],
                [log, cond.xp_inside(), cond.xm_outside()],
                [log, cond.xp_inside(), cond.xm_outside()])
    if p_range == 0:
        return ([log, cond.xm_inside()],
                [log, cond.xp_inside()],
                [log, cond.xp_inside(), cond.xm_inside()])
    return ([log, cond.xm_inside()],
            [log, cond.xp_outside()],
            [log, cond.xp_outside(), cond.xm_inside()])


class Contours:
    """
    Owns the branch cuts in the momentum plane (P), in both Zhukovsky planes (XP, XM) and in the
    rapidity plane (U) for one value of the coupling constants.
    """

    def __init__(self) -> None:
        #: the settings (ranges, resolution) of the construction
        self.settings = ContoursSettings()
        #: all generated cuts
        self.cuts: list[Cut] = []
        # the coupling constants the cuts were (or are being) generated for
        self._consts: Optional[CouplingConstants] = None
        # the p-range around which the construction was ordered
        self._scope: Optional[int] = None
        # queue of pending construction commands
        self._commands: deque[Callable[[CouplingConstants], None]] = deque()
        self._num_commands = 0
        # solver used for tracing the energy cut
        self._solver = NewtonSolver()
        # plain Newton iteration for polishing the branch points of the energy
        self._branch_point_solver = ScipyNewtonSolver()
        self._branch_point_solver.convergence_tolerance = 1e-10

    @property
    def consts(self) -> Optional[CouplingConstants]:
        """the coupling constants the contours are built for"""
        return self._consts

    @profile
    def update(self, scope: int, consts: CouplingConstants) -> bool:
        """
        Advance the construction by one command.

        A change of the coupling constants discards all cuts and restarts the construction,
        ordering the momentum ranges outward from scope. Returns True once the construction
        is complete.
        """
        if self._consts is None or self._consts != consts or self._scope != scope:
            self._plan(scope, CouplingConstants(consts.h, consts.k()))
        if self._commands:
            command = self._commands.popleft()
            assert self._consts is not None
            command(self._consts)
            if not self._commands:
                logger.info("Generated %d cuts for %s", len(self.cuts), self._consts)
        return not self._commands

    def progress(self) -> tuple[int, int]:
        """the number of executed and the total number of construction commands"""
        return self._num_commands - len(self._commands), self._num_commands

    def is_complete(self) -> bool:
        return self._consts is not None and not self._commands

    def build(self, scope: int, consts: CouplingConstants) -> Contours:
        """run the construction to completion"""
        while not self.update(scope, consts):
            pass
        return self

    def _plan(self, scope: int, consts: CouplingConstants) -> None:
        self.cuts = []
        self._consts = consts
        self._scope = scope
        self._commands = deque()
        self._commands.append(self._generate_x_plane_cuts)
        self._commands.append(self._generate_u_plane_cuts)
        # generate the momentum ranges outward from the scope
        p_ranges = range(self.settings.p_range_min, self.settings.p_range_max + 1)
        for p_range in sorted(p_ranges, key=lambda n: (abs(n - scope), n)):
            self._commands.append(partial(self._generate_e_cut, p_range))
            self._commands.append(partial(self._generate_x_curve_preimage, p_range, CutKind.U_SHORT_SCALLION))
            self._commands.append(partial(self._generate_x_curve_preimage, p_range, CutKind.U_SHORT_KIDNEY))
            self._commands.append(partial(self._generate_axis_preimage, p_range, -1))
            self._commands.append(partial(self._generate_axis_preimage, p_range, 1))
        self._num_commands = len(self._commands)

    def _push(self, cut: Cut) -> None:
        # store a cut together with its complex conjugate
        self.cuts.append(cut)
        self.cuts.append(cut.conj())

    # construction commands

    def _scallion(self, consts: CouplingConstants) -> ComplexArray:
        # the upper half of the scallion xp(q, 0), from s to -infinity + i k / h
        n = self.settings.curve_samples
        q_max = 1 - consts.k() / (math.pi * consts.h * self.settings.infinity)
        q = np.concatenate([np.linspace(0, 0.9, n // 2, endpoint=False)[1:],
                            1 - np.geomspace(0.1, 1 - q_max, n // 2)])
        return np.concatenate([[consts.s()], kinematics.xp(q, 0, consts)])

    def _kidney(self, consts: CouplingConstants) -> ComplexArray:
        # the upper half of the kidney xp(q, -k), from 0 to -1/s
        q = np.linspace(0, 1, self.settings.curve_samples + 1)[1:-1]
        return np.concatenate([[0], kinematics.xp(q, -consts.k(), consts), [-1 / consts.s()]])

    def _generate_x_plane_cuts(self, consts: CouplingConstants) -> None:
        inf = self.settings.infinity
        s = consts.s()
        xp_cuts = [
            Cut(Component.XP, [-inf, 0], 0, CutType.log(Component.XP), 0),
            Cut(Component.XP, [-inf, 0], -1 / s, CutType.u_long_negative(Component.XP), 0),
            Cut(Component.XP, [0, inf], s, CutType.u_long_positive(Component.XP), 0),
        ]
        if consts.k() > 0:
            scallion = self._scallion(consts)
            xp_cuts.append(Cut(Component.XP, np.concatenate([np.conj(scallion[::-1]), scallion[1:]]), s,
                               CutType.u_short_scallion(Component.XP), 0))
            kidney = self._kidney(consts)
            xp_cuts.append(Cut(Component.XP, np.concatenate([kidney, np.conj(kidney[::-1])[1:]]), -1 / s,
                               CutType.u_short_kidney(Component.XP), 0))
        else:
            # without flux the scallion and the kidney both degenerate to the unit circle
            circle = np.exp(1j * np.linspace(-np.pi, np.pi, self.settings.curve_samples))
            xp_cuts.append(Cut(Component.XP, circle, 1, CutType.u_short_scallion(Component.XP), 0))
        for cut in xp_cuts:
            self._push(cut)

    def _generate_u_plane_cuts(self, consts: CouplingConstants) -> None:
        inf = self.settings.infinity
        _, u_s = kinematics.compute_branch_point(0, BranchPointType.XP_POSITIVE_AXIS_IM_GE_ZERO, consts)
        _, u_inv_s = kinematics.compute_branch_point(0, BranchPointType.XP_NEGATIVE_AXIS_FROM_ABOVE, consts)
        for b in (UBranch.OUTSIDE, UBranch.BETWEEN):
            visibility = [CutVisibilityCondition.up_branch(b)]
            self._push(Cut(Component.U, [complex(-inf, u_s.imag), u_s], u_s,
                           CutType.u_short_scallion(Component.XP), 0, periodic=True, visibility=visibility))
            self._push(Cut(Component.U, [u_s, complex(inf, u_s.imag)], u_s,
                           CutType.u_long_positive(Component.XP), 0, periodic=True, visibility=visibility))
        # the kidney and the negative real xp-axis share the same image, the log cut takes precedence
        for b in (UBranch.BETWEEN, UBranch.INSIDE):
            visibility = [CutVisibilityCondition.up_branch(b)]
            path = [complex(-inf, u_inv_s.imag), u_inv_s]
            self._push(Cut(Component.U, path, u_inv_s, CutType.log(Component.XP), 0,
                           periodic=True, visibility=visibility))
            self._push(Cut(Component.U, path, u_inv_s, CutType.u_long_negative(Component.XP), 0,
                           periodic=True, visibility=visibility))

    def _trace_e_branch_point(self, p_range: int, consts: CouplingConstants) -> Optional[complex]:
        # the zero of (1 + k p)^2 + 4 h^2 sin^2(pi p) near p = p_range in the upper half plane
        k, h = consts.k(), consts.h
        m_eff = 1 + k * p_range
        if m_eff == 0:
            # double zero on the real axis, the energy is regular there
            return None
        sign = 1 if m_eff * (-1) ** p_range > 0 else -1

        def f(p: complex) -> complex:
            return 1 + k * p + sign * 2j * h * np.sin(np.pi * p)

        def df(p: complex) -> complex:
            return k + sign * 2j * np.pi * h * np.cos(np.pi * p)

        guess = p_range - m_eff / (k + sign * 2j * np.pi * h * (-1) ** p_range)
        try:
            return complex(self._branch_point_solver.solve(f, guess, df))
        except np.linalg.LinAlgError as err:
            logger.warning("Could not find the branch point of the energy in p-range %d: %s", p_range, err)
            return None

    def _generate_e_cut(self, p_range: int, consts: CouplingConstants) -> None:
        branch_point = self._trace_e_branch_point(p_range, consts)
        if branch_point is None:
            return
        # follow the curve E^2(p) = -t with t growing from zero, which runs off to +i infinity
        step = self.settings.e_cut_step
        self._solver.max_step = step
        self._solver.max_displacement = (4 * step, 4 * step)
        p = branch_point
        t = 0.0
        ps = [p]
        ts = [t]
        while abs(p.imag) < self.settings.max_im_p and len(ps) < self.settings.max_points:
            den2 = kinematics.den2_dp(p, 1, consts)
            dt = step * abs(den2)
            t_next = t + dt

            def f(p: complex) -> complex:
                return kinematics.en2(p, 1, consts) + t_next

            try:
                p = self._solver.solve(f, p - dt / den2, lambda p: kinematics.den2_dp(p, 1, consts))
            except np.linalg.LinAlgError:
                logger.warning("Tracing the energy cut in p-range %d stopped at p = %.4f%+.4fj",
                               p_range, p.real, p.imag)
                break
            t = t_next
            ps.append(p)
            ts.append(t)
        if len(ps) < 2:
            return
        p_path = np.array(ps)
        self._push(Cut(Component.P, p_path, branch_point, CutType.e(), p_range))

        # the images of both sides of the cut, with E = +i sqrt(t) and E = -i sqrt(t)
        sqrt_t = np.sqrt(np.array(ts))
        sin = np.sin(np.pi * p_path)
        m_eff = 1 + consts.k() * p_path
        x_plus = (m_eff + 1j * sqrt_t) / (2 * consts.h * sin)
        x_minus = (m_eff - 1j * sqrt_t) / (2 * consts.h * sin)
        exp = np.exp(1j * np.pi * p_path)

        def both_sides(plus: ComplexArray, minus: ComplexArray) -> ComplexArray:
            return np.concatenate([minus[::-1], plus[1:]])

        xp_path = both_sides(x_plus * exp, x_minus * exp)
        xm_path = both_sides(x_plus / exp, x_minus / exp)
        u_path = _u_of_x_along(xp_path, consts)
        xp_visibility, xm_visibility, u_visibility = _e_image_visibility(p_range)
        self._push(Cut(Component.XP, xp_path, xp_path[len(ps) - 1], CutType.e(), p_range,
                       visibility=xp_visibility))
        self._push(Cut(Component.XM, xm_path, xm_path[len(ps) - 1], CutType.e(), p_range,
                       visibility=xm_visibility))
        self._push(Cut(Component.U, u_path, u_path[len(ps) - 1], CutType.e(), p_range,
                       periodic=True, visibility=u_visibility))

    def _truncate(self, path: list[complex], p_range: int) -> list[complex]:
        # keep the momenta traced from the seed up to the first one leaving the neighbourhood of the
        # p-range
        for i, p in enumerate(path):
            if abs(p.imag) > self.settings.max_im_p or abs(p.real - p_range - 0.5) > 1:
                return path[:i]
        return path

    def _push_preimage(self, p_range: int, p_path: list[complex], types: list[CutType],
                       crossed_types: list[CutType], consts: CouplingConstants) -> None:
        # a momentum-plane cut for the principal and the crossed energy branch, and its xm-image
        if len(p_path) < 2:
            return
        path = np.array(p_path)
        for typ in types:
            self._push(Cut(Component.P, path, None, typ, p_range,
                           visibility=[CutVisibilityCondition.e_branch(1)]))
        for typ in crossed_types:
            self._push(Cut(Component.P, path, None, typ, p_range,
                           visibility=[CutVisibilityCondition.e_branch(-1)]))
        xm_path = kinematics.xm(path, 1, consts)
        for typ in types:
            self._push(Cut(Component.XM, xm_path, None, typ, p_range,
                           visibility=[CutVisibilityCondition.log_branch(p_range),
                                       CutVisibilityCondition.e_branch(1)]))

    def _generate_x_curve_preimage(self, p_range: int, kind: CutKind, consts: CouplingConstants) -> None:
        # the momenta p in the given range with xp(p, 1) = xp(q, m) on the scallion (m = 0) or on the
        # kidney (m = -k), using xp(p + n, m) = xp(p, m + n k)
        if consts.k() == 0:
            return
        m = -p_range * consts.k() if kind is CutKind.U_SHORT_SCALLION else -(p_range + 1) * consts.k()
        q0 = p_range + 0.5
        path, m_reached = follow(lambda m_: kinematics.xp(q0, m_, consts), 1.0, m, q0, consts,
                                 self.settings.m_step)
        if m_reached != m:
            logger.warning("Could not reach the %s in p-range %d", kind.value, p_range)
            return
        eps = 1e-3
        p0 = path[-1]
        lower, _ = follow(lambda q: kinematics.xp(q, m, consts), q0, p_range + eps, p0, consts,
                          self.settings.q_step)
        upper, _ = follow(lambda q: kinematics.xp(q, m, consts), q0, p_range + 1 - eps, p0, consts,
                          self.settings.q_step)
        p_path = self._truncate(lower, p_range)[::-1] + self._truncate(upper, p_range)[1:]
        self._push_preimage(p_range, p_path, [CutType(kind, Component.XP)], [], consts)

    def _generate_axis_preimage(self, p_range: int, sign: int, consts: CouplingConstants) -> None:
        # the momenta p in the given range with xp(p, 1) on the negative (sign = -1) or positive
        # (sign = +1) real axis
        q0 = p_range + (0.875 if sign < 0 else 0.125)
        xp0 = complex(kinematics.xp(q0, 1, consts))
        # move xp vertically onto the real axis
        path, reached = follow(lambda s: xp0 - 1j * s * xp0.imag, 0.0, 1.0, q0, consts, 0.01)
        if reached != 1.0:
            logger.warning("Could not reach the real xp-axis in p-range %d", p_range)
            return
        # then along the axis, towards infinity and towards zero
        r0 = math.log(abs(xp0.real))
        r_max = math.log(self.settings.infinity)
        r_min = -r_max
        step = self.settings.log_x_step
        outer, _ = follow(lambda r: sign * math.exp(r), r0, r_max, path[-1], consts, step)
        inner, _ = follow(lambda r: sign * math.exp(r), r0, r_min, path[-1], consts, step)
        p_path = self._truncate(inner, p_range)[::-1] + self._truncate(outer, p_range)[1:]
        if sign < 0:
            # on the crossed sheet xm = -1/xp is on the positive axis
            types = [CutType.log(Component.XP), CutType.u_long_negative(Component.XP)]
            crossed_types = [CutType.u_long_positive(Component.XM)]
        else:
            types = [CutType.u_long_positive(Component.XP)]
            crossed_types = [CutType.log(Component.XM), CutType.u_long_negative(Component.XM)]
        self._push_preimage(p_range, p_path, types, crossed_types, consts)

    # queries

    def add_debug_path(self, component: Component, path: list[complex] | ComplexArray,
                       p_range: int = 0) -> None:
        """add a diagnostic polyline, it is drawn but never crossed"""
        self.cuts.append(Cut(component, path, None, CutType.debug_path(), p_range))

    def get_visible_cuts(self, point: Point, component: Component, include_debug: bool = False) -> list[Cut]:
        """the cuts in the given chart whose visibility conditions hold for the point"""
        return [cut for cut in self.cuts
                if cut.component is component and cut.is_visible(point)
                and (include_debug or cut.typ.kind is not CutKind.DEBUG_PATH)]

    def get_crossed_cuts(self, point: Point, component: Component, new_value: complex,
                         consts: CouplingConstants, tolerance: float = 1e-12) -> list[Crossing]:
        """
        The cuts crossed when moving the point's chart 'component' in a straight line to new_value.

        The crossings are ordered along the move, cuts crossed within the tolerance of each other
        are reported as one crossing.
        """
        assert self.is_complete(), "The contours have to be fully built before they are queried"
        assert self._consts == consts, f"Contours built for {self._consts} queried with {consts}"
        z1 = point.get(component)
        hits = []
        for cut in self.get_visible_cuts(point, component):
            hit = cut.intersection(z1, complex(new_value), consts)
            if hit is not None:
                hits.append((hit[0], cut))
        hits.sort(key=lambda hit: hit[0])
        crossings: list[Crossing] = []
        for t, cut in hits:
            if crossings and t - crossings[-1].t <= tolerance:
                crossings[-1].cuts.append(cut)
            else:
                crossings.append(Crossing(t, [cut]))
        return crossings

    def branch_points(self, component: Component) -> list[complex]:
        """the distinct branch points of the cuts in the given chart"""
        points: list[complex] = []
        for cut in self.cuts:
            if cut.component is component and cut.branch_point is not None \
                    and all(abs(cut.branch_point - bp) > 1e-9 for bp in points):
                points.append(cut.branch_point)
        return points

    def plot(self, ax: Axes, component: Component, point: Optional[Point] = None) -> None:
        """plot the cuts of one chart, only those visible for the point if one is given"""
        colors = {
            CutKind.E: "tab:orange",
            CutKind.LOG: "tab:red",
            CutKind.U_LONG_POSITIVE: "tab:green",
            CutKind.U_LONG_NEGATIVE: "tab:olive",
            CutKind.U_SHORT_SCALLION: "tab:blue",
            CutKind.U_SHORT_KIDNEY: "tab:cyan",
            CutKind.DEBUG_PATH: "tab:gray",
        }
        if point is None:
            cuts = [cut for cut in self.cuts if cut.component is component]
        else:
            cuts = self.get_visible_cuts(point, component, include_debug=True)
        dz = period(self._consts) if self._consts is not None else 0
        for cut in cuts:
            shifts = range(-1, 2) if cut.periodic else range(1)
            for n in shifts:
                path = cut.path + n * dz
                ax.plot(path.real, path.imag, color=colors[cut.typ.kind], lw=1)
        if point is not None:
            z = point.get(component)
            ax.plot([z.real], [z.imag], "ko", ms=4)
        ax.set_xlabel(f"Re({component.value})")
        ax.set_ylabel(f"Im({component.value})")
