"""Unit tests for recorded paths."""

import logging

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from pxu.contours.contours import Contours  # noqa: E402
from pxu.contours.cut import Component, CutType  # noqa: E402
from pxu.core.kinematics import CouplingConstants  # noqa: E402
from pxu.path import EditablePath, Path, SavedPath  # noqa: E402
from pxu.point import Point  # noqa: E402
from pxu.pxu import Pxu  # noqa: E402
from pxu.state import State  # noqa: E402


@pytest.fixture
def consts() -> CouplingConstants:
    return CouplingConstants(7.0, 3)


@pytest.fixture
def contours(build_contours, consts: CouplingConstants) -> Contours:
    return build_contours(consts.h, consts.k())


@pytest.fixture
def saved_path(contours: Contours, consts: CouplingConstants) -> SavedPath:
    """A path that moves a single point across the upper energy cut."""
    cut = next(cut for cut in contours.cuts
               if cut.component is Component.P and cut.typ == CutType.e() and cut.p_range == 0
               and cut.branch_point.imag > 0)
    i = len(cut.path) // 3
    tangent = cut.path[i + 1] - cut.path[i]
    normal = 1j * tangent / abs(tangent)
    p_a, p_b = cut.path[i] - 0.01 * normal, cut.path[i] + 0.01 * normal
    start = State.from_points([Point(p_a, consts)])
    base_path = [p_a, (2 * p_a + p_b) / 3, (2 * p_b + p_a) / 3, p_b]
    return SavedPath("across the energy cut", base_path, start, Component.P, 0, consts)


def test_saved_path_save_load(saved_path: SavedPath) -> None:
    loaded = SavedPath.load(saved_path.save())
    assert loaded.name == saved_path.name
    assert loaded.base_path == pytest.approx(saved_path.base_path)
    assert loaded.component is Component.P
    assert loaded.excitation == 0
    assert loaded.consts == saved_path.consts
    assert loaded.start.points[0].p == saved_path.start.points[0].p


def test_from_base_path(saved_path: SavedPath, contours: Contours, consts: CouplingConstants) -> None:
    """Test that replaying a path starts a new segment when the sheet changes."""
    path = Path.from_base_path(saved_path, contours, consts)

    assert path.name == saved_path.name
    assert sum(len(segment) for segment in path.segments) == len(saved_path.base_path)
    sheets = [segment.sheet_data for segment in path.segments]
    assert all(a != b for a, b in zip(sheets[:-1], sheets[1:]))
    # the long u-cuts run close to the energy cut, the energy branch changes only once
    assert sheets[0].e_branch == 1
    assert sheets[-1].e_branch == -1
    assert sum(not a.is_same(b, Component.P) for a, b in zip(sheets[:-1], sheets[1:])) == 1
    # the start state is not modified by the replay
    assert saved_path.start.points[0].p == saved_path.base_path[0]

    values = path.get(Component.P)
    assert len(values) == len(path.segments)
    assert values[0][0][0] == pytest.approx(saved_path.base_path[0])
    assert values[-1][0][-1] == pytest.approx(saved_path.base_path[-1])


def test_from_base_path_failure(consts: CouplingConstants, contours: Contours,
                                caplog: pytest.LogCaptureFixture) -> None:
    """Test that a failing replay is logged and keeps the part recorded so far."""
    start = State.from_points([Point(0.3, consts)])
    saved = SavedPath("too far", [0.3, 0.32, 1.0], start, Component.P, 0, consts)

    with caplog.at_level(logging.WARNING, logger="pxu"):
        path = Path.from_base_path(saved, contours, consts)

    assert "too far" in caplog.text
    assert len(path.segments) == 1
    assert len(path.segments[0]) == 2


def test_plot(saved_path: SavedPath, contours: Contours, consts: CouplingConstants) -> None:
    path = Path.from_base_path(saved_path, contours, consts)
    fig, ax = plt.subplots()
    path.plot(ax, Component.XP)
    assert len(ax.lines) == len(path.segments)
    path.plot(ax, Component.U, excitation=0)
    plt.close(fig)

    # the segments on the crossed sheet are dashed
    fig, ax = plt.subplots()
    path.plot(ax, Component.P, sheet_data=path.segments[0].sheet_data)
    dashed = [line.get_linestyle() == "--" for line in ax.lines]
    assert dashed == [segment.sheet_data.e_branch == -1 for segment in path.segments]
    plt.close(fig)


def test_editable_path(consts: CouplingConstants) -> None:
    editable = EditablePath()
    assert editable.get(Component.P) == []
    state = State.from_points([Point(0.1, consts), Point(0.2, consts)])

    editable.push(state)
    state.points[0].update(Component.P, 0.12, consts)
    editable.push(state)

    assert editable.get(Component.P) == [[0.1, 0.12], [0.2, 0.2]]
    editable.clear()
    assert editable.states == []


def test_get_path_by_name(saved_path: SavedPath, contours: Contours, consts: CouplingConstants) -> None:
    pxu = Pxu(consts)
    assert len(pxu.state) == 1
    assert pxu.get_path_by_name("across the energy cut") is None
    pxu.paths.append(Path.from_base_path(saved_path, contours, consts))
    assert pxu.get_path_by_name("across the energy cut") is pxu.paths[0]


def test_update_contours(consts: CouplingConstants) -> None:
    pxu = Pxu(consts)
    pxu.contours.settings.p_range_min = 0
    pxu.contours.settings.p_range_max = 0
    while not pxu.update_contours():
        assert not pxu.contours.is_complete()
    assert pxu.contours.is_complete()
    assert pxu.contours.consts == consts
