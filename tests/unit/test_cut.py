"""Unit tests for the Cut class and its visibility conditions."""

import numpy as np
import pytest

from pxu.contours.cut import Component, Cut, CutType, CutVisibilityCondition, period
from pxu.core.kinematics import CouplingConstants, UBranch
from pxu.point import Point


@pytest.fixture
def consts() -> CouplingConstants:
    return CouplingConstants(2.0, 5)


def make_cut(periodic: bool = False) -> Cut:
    """A cut in the xp-plane made of two edges."""
    path = [0.5 + 0.5j, 1.0 + 1.0j, 1.0 + 2.0j]
    visibility = [CutVisibilityCondition.im_xp(1), CutVisibilityCondition.log_branch(0),
                  CutVisibilityCondition.up_branch(UBranch.BETWEEN)]
    return Cut(Component.XP, path, 0.5 + 0.5j, CutType.log(Component.XP), 0, periodic, visibility)


def test_cut_type() -> None:
    """Test the tagging of cut types by the Zhukovsky variables."""
    assert CutType.log(Component.XP).conj() == CutType.log(Component.XM)
    assert CutType.e().conj() == CutType.e()
    with pytest.raises(AssertionError):
        CutType.log(Component.P)
    with pytest.raises(AssertionError):
        CutType.u_long_positive(Component.U)


def test_conj() -> None:
    """Test complex conjugation of a cut."""
    cut = make_cut()
    conj = cut.conj()
    assert conj.component is Component.XM
    assert conj.typ == CutType.log(Component.XM)
    assert conj.branch_point == pytest.approx(0.5 - 0.5j)
    np.testing.assert_allclose(conj.path, [1.0 - 2.0j, 1.0 - 1.0j, 0.5 - 0.5j])
    assert conj.visibility == [CutVisibilityCondition.im_xm(-1), CutVisibilityCondition.log_branch(0),
                               CutVisibilityCondition.um_branch(UBranch.BETWEEN)]


def test_conj_twice() -> None:
    """Test that conjugating twice restores the cut."""
    cut = make_cut()
    twice = cut.conj().conj()
    np.testing.assert_allclose(twice.path, cut.path)
    assert twice.component is cut.component
    assert twice.typ == cut.typ
    assert twice.branch_point == cut.branch_point
    assert twice.visibility == cut.visibility


def test_shift() -> None:
    """Test translations and reflections of a cut."""
    cut = make_cut()
    shifted = cut.shift(1j)
    np.testing.assert_allclose(shifted.path, cut.path + 1j)
    assert shifted.branch_point == pytest.approx(0.5 + 1.5j)
    # the original is untouched
    np.testing.assert_allclose(cut.path, [0.5 + 0.5j, 1.0 + 1.0j, 1.0 + 2.0j])

    reflected = cut.shift_conj(1j)
    np.testing.assert_allclose(reflected.path, [0.5 + 1.5j, 1.0 + 1.0j, 1.0 + 0.0j])
    assert reflected.branch_point == pytest.approx(0.5 + 1.5j)
    assert reflected.component is cut.component


def test_intersection(consts: CouplingConstants) -> None:
    """Test the segment-polyline intersection."""
    cut = make_cut()
    hit = cut.intersection(0.0 + 1.5j, 2.0 + 1.5j, consts)
    assert hit is not None
    t, z, j = hit
    assert t == pytest.approx(0.5)
    assert z == pytest.approx(1.0 + 1.5j)
    assert j == 1

    # crossing the first edge
    t, z, j = cut.intersection(1.0 + 0.5j, 0.5 + 1.0j, consts)
    assert t == pytest.approx(0.5)
    assert z == pytest.approx(0.75 + 0.75j)
    assert j == 0

    # missing the cut, and parallel to an edge
    assert cut.intersection(2.0 + 0.0j, 3.0 + 3.0j, consts) is None
    assert cut.intersection(1.5 + 1.0j, 1.5 + 2.0j, consts) is None


def test_intersection_first_crossing(consts: CouplingConstants) -> None:
    """Test that the earliest crossing along the segment is reported."""
    cut = Cut(Component.P, [0.0 + 0.0j, 1.0 + 1.0j, 2.0 + 0.0j], None, CutType.e(), 0)
    t, z, j = cut.intersection(2.0 + 0.5j, 0.0 + 0.5j, consts)
    assert t == pytest.approx(0.25)
    assert j == 1


def test_periodic_intersection(consts: CouplingConstants) -> None:
    """Test that periodic cuts are found in all periods and the crossing is in the query frame."""
    dz = period(consts)
    assert dz == pytest.approx(2j * consts.k() / consts.h)
    cut = Cut(Component.U, [-10 - 0.5j, 10 - 0.5j], None, CutType.log(Component.XP), 0, periodic=True)
    z1, z2 = 1 + 0.3 * dz, 1 - 0.3 * dz
    hit = cut.intersection(z1 + 3 * dz, z2 + 3 * dz, consts)
    assert hit is not None
    t, z, _ = hit
    # the crossing point of the shifted segment is the shifted crossing point
    t0, z0, _ = cut.intersection(z1, z2, consts)
    assert t == pytest.approx(t0)
    assert z == pytest.approx(z0 + 3 * dz)

    # non-periodic cuts are only found where they are
    plain = Cut(Component.U, cut.path, None, CutType.log(Component.XP), 0)
    assert plain.intersection(z1 + 3 * dz, z2 + 3 * dz, consts) is None


def test_visibility(consts: CouplingConstants) -> None:
    """Test the visibility conditions against the sheet data of a point."""
    pt = Point(0.25 + 0.05j, consts)
    assert pt.xp.imag > 0

    assert CutVisibilityCondition.im_xp(1).check(pt)
    assert not CutVisibilityCondition.im_xp(-1).check(pt)
    assert CutVisibilityCondition.log_branch(0).check(pt)
    assert not CutVisibilityCondition.log_branch(1).check(pt)
    assert CutVisibilityCondition.e_branch(1).check(pt)
    assert CutVisibilityCondition.up_branch(UBranch.OUTSIDE).check(pt)
    assert CutVisibilityCondition.um_branch(UBranch.OUTSIDE).check(pt)
    assert not CutVisibilityCondition.um_branch(UBranch.INSIDE).check(pt)

    cut = make_cut()
    assert not cut.is_visible(pt)
    pt.sheet_data.u_branch = (UBranch.BETWEEN, UBranch.OUTSIDE)
    assert cut.is_visible(pt)


def test_inside_scallion_visibility(consts: CouplingConstants) -> None:
    """Test the conditions on the position of xp and xm relative to the scallion."""
    pt = Point(0.3, consts)
    assert CutVisibilityCondition.xp_outside().check(pt)
    assert CutVisibilityCondition.xm_outside().check(pt)
    assert not CutVisibilityCondition.xp_inside().check(pt)

    for branch in (UBranch.BETWEEN, UBranch.INSIDE):
        pt.sheet_data.u_branch = (branch, UBranch.OUTSIDE)
        assert CutVisibilityCondition.xp_inside().check(pt)
        assert CutVisibilityCondition.xm_outside().check(pt)
        assert not CutVisibilityCondition.xm_inside().check(pt)

    assert CutVisibilityCondition.xp_inside().conj() == CutVisibilityCondition.xm_inside()
    assert CutVisibilityCondition.xm_outside().conj() == CutVisibilityCondition.xp_outside()


def test_save() -> None:
    data = make_cut().save()
    assert data["component"] == "xp"
    assert data["typ"] == ["log", "xp"]
    assert data["visibility"][2] == ("up_branch", "between")
