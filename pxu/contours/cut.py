"""
Branch cuts, represented as polylines in one of the charts of a point.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from pxu.core.kinematics import Component, CouplingConstants, UBranch
from pxu.core.types import ComplexArray, DataDict

if TYPE_CHECKING:
    from pxu.point import Point

#: periodic cuts are tested for intersections with this many periods to either side
PERIODIC_SHIFTS = 5


class CutKind(enum.Enum):
    E = "e"
    DEBUG_PATH = "debug_path"
    LOG = "log"
    U_LONG_POSITIVE = "u_long_positive"
    U_LONG_NEGATIVE = "u_long_negative"
    U_SHORT_SCALLION = "u_short_scallion"
    U_SHORT_KIDNEY = "u_short_kidney"


class CutType:
    """
    The type of a cut, which determines what happens to the sheet data when it is crossed.

    The log and u-type cuts are tagged with the Zhukovsky variable (XP or XM) whose branch changes.
    """

    def __init__(self, kind: CutKind, component: Optional[Component] = None) -> None:
        if kind in (CutKind.E, CutKind.DEBUG_PATH):
            assert component is None, f"{kind.name} cuts are not tagged by a component"
        else:
            assert component in (Component.XP, Component.XM), \
                f"{kind.name} cuts have to be tagged by XP or XM, got {component}"
        self.kind = kind
        self.component = component

    @classmethod
    def e(cls) -> CutType:
        return cls(CutKind.E)

    @classmethod
    def debug_path(cls) -> CutType:
        return cls(CutKind.DEBUG_PATH)

    @classmethod
    def log(cls, component: Component) -> CutType:
        return cls(CutKind.LOG, component)

    @classmethod
    def u_long_positive(cls, component: Component) -> CutType:
        return cls(CutKind.U_LONG_POSITIVE, component)

    @classmethod
    def u_long_negative(cls, component: Component) -> CutType:
        return cls(CutKind.U_LONG_NEGATIVE, component)

    @classmethod
    def u_short_scallion(cls, component: Component) -> CutType:
        return cls(CutKind.U_SHORT_SCALLION, component)

    @classmethod
    def u_short_kidney(cls, component: Component) -> CutType:
        return cls(CutKind.U_SHORT_KIDNEY, component)

    def conj(self) -> CutType:
        if self.component is None:
            return CutType(self.kind)
        return CutType(self.kind, self.component.conj())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CutType):
            return NotImplemented
        return self.kind is other.kind and self.component is other.component

    def __hash__(self) -> int:
        return hash((self.kind, self.component))

    def __repr__(self) -> str:
        if self.component is None:
            return self.kind.name
        return f"{self.kind.name}({self.component.name})"


class VisibilityKind(enum.Enum):
    IM_XP = "im_xp"
    IM_XM = "im_xm"
    LOG_BRANCH = "log_branch"
    E_BRANCH = "e_branch"
    UP_BRANCH = "up_branch"
    UM_BRANCH = "um_branch"
    XP_INSIDE = "xp_inside"
    XM_INSIDE = "xm_inside"


def _sign(value: float) -> int:
    return 1 if value >= 0 else -1


class CutVisibilityCondition:
    """A predicate on a point, deciding whether a cut is relevant for it."""

    def __init__(self, kind: VisibilityKind, value: int | bool | UBranch) -> None:
        self.kind = kind
        self.value = value

    @classmethod
    def im_xp(cls, sign: int) -> CutVisibilityCondition:
        return cls(VisibilityKind.IM_XP, _sign(sign))

    @classmethod
    def im_xm(cls, sign: int) -> CutVisibilityCondition:
        return cls(VisibilityKind.IM_XM, _sign(sign))

    @classmethod
    def log_branch(cls, branch: int) -> CutVisibilityCondition:
        return cls(VisibilityKind.LOG_BRANCH, branch)

    @classmethod
    def e_branch(cls, branch: int) -> CutVisibilityCondition:
        return cls(VisibilityKind.E_BRANCH, branch)

    @classmethod
    def up_branch(cls, branch: UBranch) -> CutVisibilityCondition:
        return cls(VisibilityKind.UP_BRANCH, branch)

    @classmethod
    def um_branch(cls, branch: UBranch) -> CutVisibilityCondition:
        return cls(VisibilityKind.UM_BRANCH, branch)

    # inside means inside of the scallion, i.e. between scallion and kidney or inside the kidney
    @classmethod
    def xp_inside(cls) -> CutVisibilityCondition:
        return cls(VisibilityKind.XP_INSIDE, True)

    @classmethod
    def xp_outside(cls) -> CutVisibilityCondition:
        return cls(VisibilityKind.XP_INSIDE, False)

    @classmethod
    def xm_inside(cls) -> CutVisibilityCondition:
        return cls(VisibilityKind.XM_INSIDE, True)

    @classmethod
    def xm_outside(cls) -> CutVisibilityCondition:
        return cls(VisibilityKind.XM_INSIDE, False)

    def check(self, point: Point) -> bool:
        sheet_data = point.sheet_data
        if self.kind is VisibilityKind.IM_XP:
            return _sign(point.xp.imag) == self.value
        if self.kind is VisibilityKind.IM_XM:
            return _sign(point.xm.imag) == self.value
        if self.kind is VisibilityKind.LOG_BRANCH:
            return sheet_data.log_branch_p + sheet_data.log_branch_m == self.value
        if self.kind is VisibilityKind.E_BRANCH:
            return sheet_data.e_branch == self.value
        if self.kind is VisibilityKind.UP_BRANCH:
            return sheet_data.u_branch[0] is self.value
        if self.kind is VisibilityKind.UM_BRANCH:
            return sheet_data.u_branch[1] is self.value
        i = 0 if self.kind is VisibilityKind.XP_INSIDE else 1
        return (sheet_data.u_branch[i] is not UBranch.OUTSIDE) == self.value

    def conj(self) -> CutVisibilityCondition:
        if self.kind in (VisibilityKind.IM_XP, VisibilityKind.IM_XM):
            assert isinstance(self.value, int)
            kind = VisibilityKind.IM_XM if self.kind is VisibilityKind.IM_XP else VisibilityKind.IM_XP
            return CutVisibilityCondition(kind, -self.value)
        if self.kind is VisibilityKind.UP_BRANCH:
            return CutVisibilityCondition(VisibilityKind.UM_BRANCH, self.value)
        if self.kind is VisibilityKind.UM_BRANCH:
            return CutVisibilityCondition(VisibilityKind.UP_BRANCH, self.value)
        if self.kind is VisibilityKind.XP_INSIDE:
            return CutVisibilityCondition(VisibilityKind.XM_INSIDE, self.value)
        if self.kind is VisibilityKind.XM_INSIDE:
            return CutVisibilityCondition(VisibilityKind.XP_INSIDE, self.value)
        return CutVisibilityCondition(self.kind, self.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CutVisibilityCondition):
            return NotImplemented
        return self.kind is other.kind and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.kind, self.value))

    def __repr__(self) -> str:
        value = self.value.name if isinstance(self.value, UBranch) else self.value
        return f"{self.kind.name}({value})"


def period(consts: CouplingConstants) -> complex:
    """the period of the periodic (u-plane) cuts"""
    return 2j * consts.k() / consts.h


class Cut:
    """
    A branch cut in one chart, stored as a sampled polyline.

    Cuts are never modified after construction, conj() and the shifts return new cuts.
    """

    def __init__(self, component: Component, path: Sequence[complex] | ComplexArray,
                 branch_point: Optional[complex], typ: CutType, p_range: int,
                 periodic: bool = False,
                 visibility: Optional[Sequence[CutVisibilityCondition]] = None) -> None:
        #: the chart the cut lives in
        self.component = component
        #: the vertices of the polyline
        self.path: ComplexArray = np.asarray(path, dtype=complex)
        #: the branch point the cut emanates from, if any
        self.branch_point = None if branch_point is None else complex(branch_point)
        #: the type of the cut, which determines the change of sheet when crossing
        self.typ = typ
        #: the copy of the momentum plane the cut belongs to
        self.p_range = p_range
        #: periodic cuts repeat with the period 2 i k / h
        self.periodic = periodic
        #: the cut is visible for a point if all of these conditions hold
        self.visibility: list[CutVisibilityCondition] = list(visibility or [])

    def _copy_with(self, path: ComplexArray, branch_point: Optional[complex]) -> Cut:
        return Cut(self.component, path, branch_point, self.typ, self.p_range,
                   self.periodic, self.visibility)

    def conj(self) -> Cut:
        """the mirror image of the cut under complex conjugation of the point"""
        branch_point = None if self.branch_point is None else self.branch_point.conjugate()
        return Cut(self.component.conj(), np.conj(self.path[::-1]), branch_point,
                   self.typ.conj(), self.p_range, self.periodic,
                   [cond.conj() for cond in self.visibility])

    def shift(self, dz: complex) -> Cut:
        """translate the cut by dz"""
        branch_point = None if self.branch_point is None else self.branch_point + dz
        return self._copy_with(self.path + dz, branch_point)

    def shift_conj(self, dz: complex) -> Cut:
        """reflect the cut at the horizontal line through dz"""
        branch_point = None
        if self.branch_point is not None:
            branch_point = (self.branch_point - dz).conjugate() + dz
        return self._copy_with(np.conj(self.path - dz) + dz, branch_point)

    def is_visible(self, point: Point) -> bool:
        return all(cond.check(point) for cond in self.visibility)

    def intersection(self, z1: complex, z2: complex,
                     consts: CouplingConstants) -> Optional[tuple[float, complex, int]]:
        """
        The first intersection (t, z, j) of the segment [z1, z2] with the cut, or None.

        t is the parameter of the crossing point z along the segment and j the index of the
        crossed edge of the polyline.
        """
        if not self.periodic:
            return self._find_intersection(z1, z2)
        best = None
        dz = period(consts)
        for n in range(-PERIODIC_SHIFTS, PERIODIC_SHIFTS + 1):
            hit = self._find_intersection(z1 + n * dz, z2 + n * dz)
            if hit is not None and (best is None or hit[0] < best[0]):
                best = hit
        if best is None:
            return None
        t, _, j = best
        return t, z1 + t * (z2 - z1), j

    def _find_intersection(self, z1: complex, z2: complex) -> Optional[tuple[float, complex, int]]:
        if len(self.path) < 2:
            return None
        r = z2 - z1
        q = self.path[:-1] - z1
        s = np.diff(self.path)
        r_cross_s = r.real * s.imag - r.imag * s.real
        with np.errstate(divide="ignore", invalid="ignore"):
            t = (q.real * s.imag - q.imag * s.real) / r_cross_s
            u = (q.real * r.imag - q.imag * r.real) / r_cross_s
        # parallel (or degenerate) segments never cross
        hits = np.flatnonzero((r_cross_s != 0) & (t >= 0) & (t <= 1) & (u >= 0) & (u <= 1))
        if len(hits) == 0:
            return None
        j = int(hits[np.argmin(t[hits])])
        return float(t[j]), z1 + float(t[j]) * r, j

    def save(self) -> DataDict:
        return {
            "component": self.component.value,
            "path": self.path,
            "branch_point": self.branch_point,
            "typ": [self.typ.kind.value, None if self.typ.component is None else self.typ.component.value],
            "p_range": self.p_range,
            "periodic": self.periodic,
            "visibility": [(c.kind.value, c.value.value if isinstance(c.value, UBranch) else c.value)
                           for c in self.visibility],
        }
