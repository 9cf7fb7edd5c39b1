"""Unit tests for the construction and the queries of the contours."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pytest  # noqa: E402

from pxu.contours.contours import Contours  # noqa: E402
from pxu.contours.cut import Component, CutKind, CutType, CutVisibilityCondition  # noqa: E402
from pxu.core import kinematics  # noqa: E402
from pxu.core.kinematics import CouplingConstants, SheetData, UBranch  # noqa: E402
from pxu.point import Point  # noqa: E402


@pytest.fixture
def consts() -> CouplingConstants:
    return CouplingConstants(7.0, 3)


@pytest.fixture
def contours(build_contours, consts: CouplingConstants) -> Contours:
    return build_contours(consts.h, consts.k())


def test_incremental_construction(consts: CouplingConstants) -> None:
    """Test that the construction advances one command per update and reports its progress."""
    contours = Contours()
    contours.settings.p_range_min = 0
    contours.settings.p_range_max = 0
    assert contours.progress() == (0, 0)
    assert not contours.is_complete()

    assert not contours.update(0, consts)
    done, total = contours.progress()
    assert done == 1
    assert total == 7

    ncalls = 1
    while not contours.update(0, consts):
        ncalls += 1
        assert contours.progress()[0] == ncalls
    assert contours.progress() == (total, total)
    assert contours.is_complete()
    assert len(contours.cuts) > 0
    # further updates do nothing
    ncuts = len(contours.cuts)
    assert contours.update(0, consts)
    assert len(contours.cuts) == ncuts

    # new coupling constants restart the construction
    assert not contours.update(0, CouplingConstants(7.0, 2))
    assert contours.progress() == (1, total)


def test_query_unbuilt_contours(consts: CouplingConstants) -> None:
    """Test that querying incomplete contours is a contract violation."""
    pt = Point(0.3, consts)
    contours = Contours()
    with pytest.raises(AssertionError):
        contours.get_crossed_cuts(pt, Component.P, 0.4, consts)
    contours.update(0, consts)
    with pytest.raises(AssertionError):
        contours.get_crossed_cuts(pt, Component.P, 0.4, consts)


def test_query_wrong_consts(contours: Contours, consts: CouplingConstants) -> None:
    other = CouplingConstants(2.0, 5)
    with pytest.raises(AssertionError):
        contours.get_crossed_cuts(Point(0.3, other), Component.P, 0.4, other)


def test_cuts_come_in_conjugate_pairs(contours: Contours) -> None:
    """Test that every cut is stored together with its complex conjugate."""
    assert len(contours.cuts) % 2 == 0
    for cut, conj in zip(contours.cuts[::2], contours.cuts[1::2]):
        assert conj.component is cut.component.conj()
        assert conj.typ == cut.typ.conj()
        np.testing.assert_allclose(conj.path, np.conj(cut.path[::-1]))


def test_energy_cut(contours: Contours, consts: CouplingConstants) -> None:
    """Test that the energy cut in the momentum plane is the curve where E^2 is negative."""
    e_cuts = [cut for cut in contours.cuts
              if cut.component is Component.P and cut.typ == CutType.e() and cut.p_range == 0]
    # the cut from the upper branch point and its conjugate
    assert len(e_cuts) == 2
    upper = e_cuts[0] if e_cuts[0].branch_point.imag > 0 else e_cuts[1]
    assert kinematics.en2(upper.branch_point, 1, consts) == pytest.approx(0, abs=1e-6)
    assert upper.path[0] == upper.branch_point
    en2 = kinematics.en2(upper.path, 1, consts)
    np.testing.assert_allclose(en2.imag, 0, atol=1e-5)
    assert np.all(en2.real <= 1e-5)
    # the cut runs off towards +i infinity
    assert upper.path[-1].imag >= contours.settings.max_im_p
    assert np.all(np.diff(-en2.real) > 0)


def test_energy_cut_images(contours: Contours, consts: CouplingConstants) -> None:
    """Test the images of the energy cut in the other charts."""
    for component in (Component.XP, Component.XM, Component.U):
        images = [cut for cut in contours.cuts if cut.component is component and cut.typ == CutType.e()]
        assert len(images) > 0
    images = [cut for cut in contours.cuts if cut.component is Component.U and cut.typ == CutType.e()]
    assert all(cut.periodic for cut in images)

    # the images of the energy cut next to the real momentum axis are not seen from there
    pt = Point(0.3, consts)
    for component in (Component.XP, Component.XM, Component.U):
        assert CutType.e() not in [cut.typ for cut in contours.get_visible_cuts(pt, component)]
    # but from the region between scallion and kidney close to the branch point
    pt = Point.on_sheet(0.1j, SheetData(0, 0, 1, (UBranch.BETWEEN, UBranch.BETWEEN)), consts)
    visible = contours.get_visible_cuts(pt, Component.XP)
    assert [cut.p_range for cut in visible if cut.typ == CutType.e()] == [0, 0]


def move(pt: Point, component: Component, target: complex, contours: Contours,
         consts: CouplingConstants, stages: int = 8) -> None:
    """Move a chart of the point in equal stages."""
    start = pt.get(component)
    for stage in range(1, stages + 1):
        assert pt.update(component, start + stage / stages * (target - start), consts, contours)


def test_crossing_log_cut(contours: Contours, consts: CouplingConstants) -> None:
    """Test moving xp through the scallion and across the negative real axis."""
    pt = Point(0.875, consts)
    target = complex(pt.xp.real, -0.1)

    move(pt, Component.XP, target, contours, consts)

    assert pt.xp == pytest.approx(target, abs=1e-6)
    assert pt.sheet_data.log_branch_p == 1
    assert pt.sheet_data.u_branch == (UBranch.BETWEEN, UBranch.OUTSIDE)
    assert pt.u == pytest.approx(kinematics.u_on_sheet(pt.p, consts, pt.sheet_data))


def test_crossing_kidney(contours: Contours, consts: CouplingConstants) -> None:
    """Test moving xp from inside the kidney to the region between kidney and scallion."""
    pt = Point(-1.3, consts)
    assert pt.sheet_data.u_branch == (UBranch.INSIDE, UBranch.INSIDE)
    target = 1.25 * pt.xp

    move(pt, Component.XP, target, contours, consts, stages=5)

    assert pt.xp == pytest.approx(target, abs=1e-6)
    assert pt.sheet_data.u_branch == (UBranch.BETWEEN, UBranch.INSIDE)
    assert pt.sheet_data.log_branch_p == 0


def test_crossing_u_plane_cut(contours: Contours, consts: CouplingConstants) -> None:
    """Test that moving u below the image of the scallion moves xp inside of the scallion."""
    pt = Point(0.3, consts)
    assert pt.u.real < kinematics.us(consts)
    assert pt.u.imag == pytest.approx(0, abs=1e-3)
    target = pt.u - 0.3j

    move(pt, Component.U, target, contours, consts, stages=3)

    assert pt.u == pytest.approx(target, abs=1e-6)
    assert pt.sheet_data.u_branch == (UBranch.BETWEEN, UBranch.OUTSIDE)


def test_x_plane_cuts(contours: Contours, consts: CouplingConstants) -> None:
    """Test the exact cuts of the xp-plane."""
    xp_cuts = {cut.typ.kind: cut for cut in contours.cuts
               if cut.component is Component.XP and cut.typ.component is Component.XP
               and not cut.visibility}
    assert CutKind.LOG in xp_cuts
    assert CutKind.U_LONG_POSITIVE in xp_cuts
    assert CutKind.U_LONG_NEGATIVE in xp_cuts

    # the scallion is a level set of the rapidity
    scallion = xp_cuts[CutKind.U_SHORT_SCALLION]
    np.testing.assert_allclose(np.abs(kinematics.u_of_x(scallion.path, consts).imag), 0, atol=1e-8)
    assert scallion.branch_point == pytest.approx(consts.s())
    kidney = xp_cuts[CutKind.U_SHORT_KIDNEY]
    assert kidney.branch_point == pytest.approx(-1 / consts.s())
    assert np.all(np.abs(kidney.path) < 1)

    branch_points = contours.branch_points(Component.XP)
    assert any(bp == pytest.approx(consts.s()) for bp in branch_points)
    assert any(bp == pytest.approx(-1 / consts.s()) for bp in branch_points)


def test_u_plane_cuts(contours: Contours, consts: CouplingConstants) -> None:
    """Test that the cuts of the rapidity plane are periodic horizontal lines."""
    u_cuts = [cut for cut in contours.cuts if cut.component is Component.U and cut.typ != CutType.e()]
    assert len(u_cuts) > 0
    for cut in u_cuts:
        assert cut.periodic
        np.testing.assert_allclose(cut.path.imag, cut.path[0].imag)


def test_momentum_plane_preimages(contours: Contours, consts: CouplingConstants) -> None:
    """Test that the traced momenta map onto the real xp-axis and onto the scallion."""
    for cut in contours.cuts:
        if cut.component is not Component.P or cut.p_range != 0 or cut.typ.component is not Component.XP:
            continue
        # the cuts of the principal energy branch
        if CutVisibilityCondition.e_branch(1) not in cut.visibility:
            continue
        xp = kinematics.xp(cut.path, 1, consts)
        if cut.typ.kind is CutKind.LOG:
            np.testing.assert_allclose(xp.imag, 0, atol=1e-5)
            assert np.all(xp.real < 0)
        elif cut.typ.kind is CutKind.U_LONG_POSITIVE:
            np.testing.assert_allclose(xp.imag, 0, atol=1e-5)
            assert np.all(xp.real > 0)
        elif cut.typ.kind is CutKind.U_SHORT_SCALLION:
            np.testing.assert_allclose(kinematics.u_of_x(xp, consts).imag, 0, atol=1e-5)


def test_crossed_cuts_are_grouped(contours: Contours, consts: CouplingConstants) -> None:
    """Test that cuts crossed at the same parameter are reported as one crossing."""
    pt = Point(0.875, consts)
    assert pt.xp.real < 0 and pt.xp.imag > 0
    target = complex(pt.xp.real, -0.1)
    crossings = contours.get_crossed_cuts(pt, Component.XP, target, consts)

    ts = [crossing.t for crossing in crossings]
    assert ts == sorted(ts)
    axis = [crossing for crossing in crossings if CutType.log(Component.XP) in
            [cut.typ for cut in crossing.cuts]]
    assert len(axis) == 1
    assert CutType.u_long_negative(Component.XP) in [cut.typ for cut in axis[0].cuts]
    assert axis[0].t == pytest.approx(pt.xp.imag / (pt.xp.imag + 0.1))


def test_debug_path_is_not_crossed(consts: CouplingConstants) -> None:
    contours = Contours()
    contours.settings.p_range_min = 0
    contours.settings.p_range_max = 0
    contours.build(0, consts)
    contours.add_debug_path(Component.P, [0.3 - 1j, 0.3 + 1j])
    pt = Point(0.25, consts)

    assert contours.get_crossed_cuts(pt, Component.P, 0.35, consts) == []
    debug = contours.get_visible_cuts(pt, Component.P, include_debug=True)
    assert any(cut.typ == CutType.debug_path() for cut in debug)


def test_visible_cuts(contours: Contours, consts: CouplingConstants) -> None:
    pt = Point(0.3, consts)
    visible = contours.get_visible_cuts(pt, Component.XP)
    assert all(cut.component is Component.XP and cut.is_visible(pt) for cut in visible)
    assert len(visible) < len([cut for cut in contours.cuts if cut.component is Component.XP])


def test_plot(contours: Contours, consts: CouplingConstants) -> None:
    fig, ax = plt.subplots()
    contours.plot(ax, Component.P)
    assert len(ax.lines) > 0
    contours.plot(ax, Component.U, Point(0.3, consts))
    plt.close(fig)
