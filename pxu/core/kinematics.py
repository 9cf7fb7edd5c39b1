"""
Kinematics of a single excitation: energy, Zhukovsky variables and rapidity.

All functions are pure and vectorised: the momentum p may be a complex scalar or a numpy array.
The square root in the energy is always the principal one. Which branch a point actually lives on
is tracked externally through its SheetData, the *_on_sheet functions select the right formula.
"""

from __future__ import annotations

import enum
import math

import numpy as np

from .types import ComplexLike, DataDict


class CouplingConstants:
    """
    The coupling constants (h, k) of the model.

    The WZW level k is an integer, internally the constants are stored as (h, kslash) with
    kslash = k / (2 pi).
    """

    def __init__(self, h: float, k: int) -> None:
        if int(k) != k:
            raise ValueError(f"The level k has to be an integer, got {k}")
        if h <= 0:
            raise ValueError(f"The coupling h has to be positive, got {h}")
        #: the coupling constant h
        self.h = float(h)
        # k / (2 pi)
        self._kslash = int(k) / (2 * math.pi)

    def k(self) -> int:
        return int(round(2 * math.pi * self._kslash))

    def kslash(self) -> float:
        return self._kslash

    def s(self) -> float:
        """the position of the branch point of the scallion on the positive real x-axis"""
        return (math.sqrt(self._kslash**2 + self.h**2) + self._kslash) / self.h

    def get_set_k(self, k: int | None = None) -> int:
        """get k, or set it to a new integer value and return it"""
        if k is not None:
            if int(k) != k:
                raise ValueError(f"The level k has to be an integer, got {k}")
            self._kslash = int(k) / (2 * math.pi)
        return self.k()

    def get_set_s(self, s: float | None = None) -> float:
        """get s, or set h such that s takes the given value and return it"""
        if s is not None and self.k() > 0:
            if s <= 1:
                raise ValueError(f"s has to be larger than one, got {s}")
            self.h = 2 * self._kslash * s / (s * s - 1)
        return self.s()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CouplingConstants):
            return NotImplemented
        return self.h == other.h and self.k() == other.k()

    def __hash__(self) -> int:
        return hash((self.h, self.k()))

    def __repr__(self) -> str:
        return f"CouplingConstants(h={self.h}, k={self.k()})"

    def save(self) -> DataDict:
        return {"h": self.h, "k": self.k()}

    @classmethod
    def load(cls, data: DataDict) -> CouplingConstants:
        return cls(data["h"], data["k"])


class Component(enum.Enum):
    """The charts of a point."""

    P = "p"
    XP = "xp"
    XM = "xm"
    U = "u"

    def conj(self) -> Component:
        """the chart that complex conjugation maps this chart to"""
        if self is Component.XP:
            return Component.XM
        if self is Component.XM:
            return Component.XP
        return self


class UBranch(enum.Enum):
    """Region of the x-plane relative to the scallion and the kidney."""

    OUTSIDE = "outside"
    BETWEEN = "between"
    INSIDE = "inside"

    def cross_scallion(self) -> UBranch:
        if self is UBranch.OUTSIDE:
            return UBranch.BETWEEN
        if self is UBranch.BETWEEN:
            return UBranch.OUTSIDE
        return self

    def cross_kidney(self) -> UBranch:
        if self is UBranch.BETWEEN:
            return UBranch.INSIDE
        if self is UBranch.INSIDE:
            return UBranch.BETWEEN
        return self


class SheetData:
    """The discrete labels of the sheet of the Riemann surface a point lives on."""

    def __init__(self, log_branch_p: int = 0, log_branch_m: int = 0, e_branch: int = 1,
                 u_branch: tuple[UBranch, UBranch] = (UBranch.OUTSIDE, UBranch.OUTSIDE),
                 im_x_sign: tuple[int, int] = (1, 1)) -> None:
        #: branch of the logarithm of xp
        self.log_branch_p = log_branch_p
        #: branch of the logarithm of xm
        self.log_branch_m = log_branch_m
        #: +1 on the sheet of the principal energy square root, -1 on the crossed sheet
        self.e_branch = e_branch
        #: position of (xp, xm) relative to scallion and kidney
        self.u_branch = u_branch
        #: sign bookkeeping of (Im xp, Im xm) across the long positive u-cuts
        self.im_x_sign = im_x_sign

    def copy(self) -> SheetData:
        return SheetData(self.log_branch_p, self.log_branch_m, self.e_branch,
                         self.u_branch, self.im_x_sign)

    def conj(self) -> SheetData:
        """the sheet data of the complex conjugate point, with xp and xm interchanged"""
        return SheetData(self.log_branch_m, self.log_branch_p, self.e_branch,
                         (self.u_branch[1], self.u_branch[0]),
                         (self.im_x_sign[1], self.im_x_sign[0]))

    def is_same(self, other: SheetData, component: Component) -> bool:
        """
        Whether two sheets look the same in the given chart.

        Labels that do not change the value of the chart's coordinate are ignored, e.g. a
        point between scallion and kidney sees the same xp-plane on every u-sheet.
        """
        if component is Component.P:
            return self.e_branch == other.e_branch
        if component is Component.U:
            if self.u_branch == other.u_branch and \
                    (self.u_branch[0] is UBranch.BETWEEN or self.u_branch[1] is UBranch.BETWEEN):
                return True
            if self.log_branch_p + self.log_branch_m != other.log_branch_p + other.log_branch_m:
                return False
            if self.log_branch_p - self.log_branch_m != other.log_branch_p - other.log_branch_m:
                return False
            return self.u_branch == other.u_branch
        # xp and xm are handled alike, with the roles of the two labels interchanged
        if component is Component.XP:
            own, other_own = self.u_branch[1], other.u_branch[1]
            partner, other_partner = self.u_branch[0], other.u_branch[0]
            log, other_log = self.log_branch_p, other.log_branch_p
        else:
            own, other_own = self.u_branch[0], other.u_branch[0]
            partner, other_partner = self.u_branch[1], other.u_branch[1]
            log, other_log = self.log_branch_m, other.log_branch_m
        if own is UBranch.BETWEEN and other_own is UBranch.BETWEEN:
            return True
        if own is other_own and (partner is UBranch.BETWEEN or other_partner is UBranch.BETWEEN):
            return log == other_log
        if self.log_branch_p + self.log_branch_m != other.log_branch_p + other.log_branch_m:
            return False
        return own is other_own

    def _key(self) -> tuple:
        return (self.log_branch_p, self.log_branch_m, self.e_branch, self.u_branch, self.im_x_sign)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SheetData):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return (f"SheetData(log_branch_p={self.log_branch_p}, log_branch_m={self.log_branch_m}, "
                f"e_branch={self.e_branch}, u_branch=({self.u_branch[0].value}, "
                f"{self.u_branch[1].value}), im_x_sign={self.im_x_sign})")

    def save(self) -> DataDict:
        return {
            "log_branch_p": self.log_branch_p,
            "log_branch_m": self.log_branch_m,
            "e_branch": self.e_branch,
            "u_branch": [b.value for b in self.u_branch],
            "im_x_sign": list(self.im_x_sign),
        }

    @classmethod
    def load(cls, data: DataDict) -> SheetData:
        u_branch = data["u_branch"]
        im_x_sign = data.get("im_x_sign", (1, 1))
        return cls(int(data["log_branch_p"]), int(data["log_branch_m"]), int(data["e_branch"]),
                   (UBranch(u_branch[0]), UBranch(u_branch[1])),
                   (int(im_x_sign[0]), int(im_x_sign[1])))


# energy

def en(p: ComplexLike, m: float, consts: CouplingConstants):
    """the energy sqrt((m + k p)^2 + 4 h^2 sin^2(pi p)), principal branch"""
    sin = np.sin(np.pi * p)
    m_eff = m + consts.k() * p
    return np.sqrt(m_eff**2 + 4 * consts.h**2 * sin**2)


def en2(p: ComplexLike, m: float, consts: CouplingConstants):
    """the square of the energy, which is single valued"""
    sin = np.sin(np.pi * p)
    m_eff = m + consts.k() * p
    return m_eff**2 + 4 * consts.h**2 * sin**2


def den2_dp(p: ComplexLike, m: float, consts: CouplingConstants):
    sin = np.sin(np.pi * p)
    cos = np.cos(np.pi * p)
    m_eff = m + consts.k() * p
    return 2 * consts.k() * m_eff + 8 * np.pi * consts.h**2 * sin * cos


def den_dp(p: ComplexLike, m: float, consts: CouplingConstants):
    sin = np.sin(np.pi * p)
    cos = np.cos(np.pi * p)
    m_eff = m + consts.k() * p
    return 2 * np.pi * (consts.kslash() * m_eff + 2 * consts.h**2 * sin * cos) / en(p, m, consts)


def den_dm(p: ComplexLike, m: float, consts: CouplingConstants):
    return (m + consts.k() * p) / en(p, m, consts)


# Zhukovsky variables
#
# The regular variables have x = (m_eff + E) / (2 h sin(pi p)), the crossed ones are obtained by
# flipping the sign of E, which gives x_crossed = -1 / x.

def _x(p: ComplexLike, m: float, consts: CouplingConstants, sign: int):
    sin = np.sin(np.pi * p)
    m_eff = m + consts.k() * p
    return (m_eff + sign * en(p, m, consts)) / (2 * consts.h * sin)


def _dx_dp(p: ComplexLike, m: float, consts: CouplingConstants, sign: int):
    sin = np.sin(np.pi * p)
    cos = np.cos(np.pi * p)
    x = _x(p, m, consts, sign)
    return (consts.k() + sign * den_dp(p, m, consts)) / (2 * consts.h * sin) - np.pi * x * cos / sin


def _dx_dm(p: ComplexLike, m: float, consts: CouplingConstants, sign: int):
    sin = np.sin(np.pi * p)
    return (1 + sign * den_dm(p, m, consts)) / (2 * consts.h * sin)


def x(p: ComplexLike, m: float, consts: CouplingConstants):
    return _x(p, m, consts, 1)


def x_crossed(p: ComplexLike, m: float, consts: CouplingConstants):
    return _x(p, m, consts, -1)


def xp(p: ComplexLike, m: float, consts: CouplingConstants):
    return _x(p, m, consts, 1) * np.exp(1j * np.pi * p)


def xm(p: ComplexLike, m: float, consts: CouplingConstants):
    return _x(p, m, consts, 1) * np.exp(-1j * np.pi * p)


def xp_crossed(p: ComplexLike, m: float, consts: CouplingConstants):
    return _x(p, m, consts, -1) * np.exp(1j * np.pi * p)


def xm_crossed(p: ComplexLike, m: float, consts: CouplingConstants):
    return _x(p, m, consts, -1) * np.exp(-1j * np.pi * p)


def _dxp_dp(p: ComplexLike, m: float, consts: CouplingConstants, sign: int):
    exp = np.exp(1j * np.pi * p)
    return (_dx_dp(p, m, consts, sign) + 1j * np.pi * _x(p, m, consts, sign)) * exp


def _dxm_dp(p: ComplexLike, m: float, consts: CouplingConstants, sign: int):
    exp = np.exp(-1j * np.pi * p)
    return (_dx_dp(p, m, consts, sign) - 1j * np.pi * _x(p, m, consts, sign)) * exp


def dxp_dp(p: ComplexLike, m: float, consts: CouplingConstants):
    return _dxp_dp(p, m, consts, 1)


def dxm_dp(p: ComplexLike, m: float, consts: CouplingConstants):
    return _dxm_dp(p, m, consts, 1)


def dxp_crossed_dp(p: ComplexLike, m: float, consts: CouplingConstants):
    return _dxp_dp(p, m, consts, -1)


def dxm_crossed_dp(p: ComplexLike, m: float, consts: CouplingConstants):
    return _dxm_dp(p, m, consts, -1)


def dxp_dm(p: ComplexLike, m: float, consts: CouplingConstants):
    return _dx_dm(p, m, consts, 1) * np.exp(1j * np.pi * p)


def dxm_dm(p: ComplexLike, m: float, consts: CouplingConstants):
    return _dx_dm(p, m, consts, 1) * np.exp(-1j * np.pi * p)


def dxp_crossed_dm(p: ComplexLike, m: float, consts: CouplingConstants):
    return _dx_dm(p, m, consts, -1) * np.exp(1j * np.pi * p)


def dxm_crossed_dm(p: ComplexLike, m: float, consts: CouplingConstants):
    return _dx_dm(p, m, consts, -1) * np.exp(-1j * np.pi * p)


# rapidity

def u_of_x(x: ComplexLike, consts: CouplingConstants):
    """the rapidity x + 1/x - 2 kslash / h log(x) with the principal logarithm"""
    return x + 1 / x - 2 * consts.kslash() / consts.h * np.log(x)


def du_dx(x: ComplexLike, consts: CouplingConstants):
    return 1 - 1 / x**2 - 2 * consts.kslash() / (consts.h * x)


def _u_shift(consts: CouplingConstants, sheet_data: SheetData) -> complex:
    # shift of the rapidity by the branch of the logarithm of xp
    return 1j / consts.h + 2j * sheet_data.log_branch_p * consts.k() / consts.h


def u(p: ComplexLike, consts: CouplingConstants, sheet_data: SheetData):
    return u_of_x(xp(p, 1, consts), consts) - _u_shift(consts, sheet_data)


def u_crossed(p: ComplexLike, consts: CouplingConstants, sheet_data: SheetData):
    return u_of_x(xp_crossed(p, 1, consts), consts) - _u_shift(consts, sheet_data)


def du_dp(p: ComplexLike, consts: CouplingConstants, sheet_data: SheetData):
    return du_dx(xp(p, 1, consts), consts) * dxp_dp(p, 1, consts)


def du_crossed_dp(p: ComplexLike, consts: CouplingConstants, sheet_data: SheetData):
    return du_dx(xp_crossed(p, 1, consts), consts) * dxp_crossed_dp(p, 1, consts)


# sheet dependent versions

def xp_on_sheet(p: ComplexLike, m: float, consts: CouplingConstants, sheet_data: SheetData):
    if sheet_data.e_branch > 0:
        return xp(p, m, consts)
    return xp_crossed(p, m, consts)


def xm_on_sheet(p: ComplexLike, m: float, consts: CouplingConstants, sheet_data: SheetData):
    if sheet_data.e_branch > 0:
        return xm(p, m, consts)
    return xm_crossed(p, m, consts)


def u_on_sheet(p: ComplexLike, consts: CouplingConstants, sheet_data: SheetData):
    if sheet_data.e_branch > 0:
        return u(p, consts, sheet_data)
    return u_crossed(p, consts, sheet_data)


def dxp_on_sheet_dp(p: ComplexLike, m: float, consts: CouplingConstants, sheet_data: SheetData):
    if sheet_data.e_branch > 0:
        return dxp_dp(p, m, consts)
    return dxp_crossed_dp(p, m, consts)


def dxm_on_sheet_dp(p: ComplexLike, m: float, consts: CouplingConstants, sheet_data: SheetData):
    if sheet_data.e_branch > 0:
        return dxm_dp(p, m, consts)
    return dxm_crossed_dp(p, m, consts)


def du_on_sheet_dp(p: ComplexLike, consts: CouplingConstants, sheet_data: SheetData):
    if sheet_data.e_branch > 0:
        return du_dp(p, consts, sheet_data)
    return du_crossed_dp(p, consts, sheet_data)


def en_of_x(xp: ComplexLike, xm: ComplexLike, consts: CouplingConstants):
    """the energy of an excitation in terms of its Zhukovsky variables"""
    return -0.5j * consts.h * (xp - 1 / xp - xm + 1 / xm)


# branch points

class BranchPointType(enum.Enum):
    """The branch points of the rapidity, in the x-plane and in the u-plane."""

    XP_POSITIVE_AXIS_IM_GE_ZERO = "xp_positive_axis_im_ge_zero"
    XP_POSITIVE_AXIS_IM_LE_ZERO = "xp_positive_axis_im_le_zero"
    XP_NEGATIVE_AXIS_FROM_ABOVE = "xp_negative_axis_from_above"
    XP_NEGATIVE_AXIS_FROM_BELOW = "xp_negative_axis_from_below"


def us(consts: CouplingConstants) -> float:
    """the real part of the u-plane branch point that is the image of x = s"""
    s = consts.s()
    return s + 1 / s - (s - 1 / s) * math.log(s)


def compute_branch_point(p_range: int, branch_point_type: BranchPointType,
                         consts: CouplingConstants) -> tuple[complex, complex]:
    """
    The position (x, u) of a branch point of the rapidity.

    The branch points of u(x) sit at x = s and x = -1/s, where du/dx vanishes. In the u-plane they
    repeat with the period 2 i k / h of the logarithm, p_range selects the copy.
    """
    s = consts.s()
    if branch_point_type in (BranchPointType.XP_POSITIVE_AXIS_IM_GE_ZERO,
                             BranchPointType.XP_POSITIVE_AXIS_IM_LE_ZERO):
        x_bp = complex(s)
    else:
        x_bp = complex(-1 / s)
    u_bp = complex(u_of_x(x_bp, consts))
    # on the negative axis the principal log sits on the upper side
    if branch_point_type is BranchPointType.XP_NEGATIVE_AXIS_FROM_BELOW:
        u_bp += 4j * consts.kslash() * math.pi / consts.h
    u_bp -= 1j / consts.h + 2j * p_range * consts.k() / consts.h
    return x_bp, u_bp
