"""
Recorded trajectories of states, e.g. an excitation encircling a branch point.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from pxu.contours.contours import Contours
from pxu.contours.cut import Component
from pxu.core.kinematics import CouplingConstants, SheetData
from pxu.core.types import Axes, ComplexArray, DataDict
from pxu.state import State

logger = logging.getLogger(__name__)


class SavedPath:
    """
    The description of a path: a start state and the sequence of values that the chart
    'component' of the excited point is moved through.
    """

    def __init__(self, name: str, base_path: list[complex], start: State, component: Component,
                 excitation: int, consts: CouplingConstants) -> None:
        #: the name of the path
        self.name = name
        #: the values of the chart of the excited point along the path
        self.base_path = [complex(z) for z in base_path]
        #: the state the path starts from
        self.start = start
        #: the chart the base path lives in
        self.component = component
        #: index of the point that is moved
        self.excitation = excitation
        #: the coupling constants
        self.consts = consts

    def save(self) -> DataDict:
        return {
            "name": self.name,
            "base_path": np.array(self.base_path),
            "start": self.start.save(),
            "component": self.component.value,
            "excitation": self.excitation,
            "consts": self.consts.save(),
        }

    @classmethod
    def load(cls, data: DataDict) -> SavedPath:
        consts = CouplingConstants.load(data["consts"])
        return cls(data["name"], list(data["base_path"]), State.load(data["start"], consts),
                   Component(data["component"]), int(data["excitation"]), consts)


class PathSegment:
    """A part of a path on which the excited point stays on one sheet."""

    def __init__(self, npoints: int, sheet_data: SheetData) -> None:
        #: the values of the charts, one list per point of the state
        self.p: list[list[complex]] = [[] for _ in range(npoints)]
        self.xp: list[list[complex]] = [[] for _ in range(npoints)]
        self.xm: list[list[complex]] = [[] for _ in range(npoints)]
        self.u: list[list[complex]] = [[] for _ in range(npoints)]
        #: the sheet data of the excited point
        self.sheet_data = sheet_data

    def push(self, state: State) -> None:
        for i, pt in enumerate(state.points):
            self.p[i].append(pt.p)
            self.xp[i].append(pt.xp)
            self.xm[i].append(pt.xm)
            self.u[i].append(pt.u)

    def get(self, component: Component) -> list[ComplexArray]:
        values = {
            Component.P: self.p,
            Component.XP: self.xp,
            Component.XM: self.xm,
            Component.U: self.u,
        }[component]
        return [np.array(v) for v in values]

    def __len__(self) -> int:
        return len(self.p[0]) if self.p else 0


class Path:
    """A path, split into segments at the changes of the sheet of the excited point."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.segments: list[PathSegment] = []

    @classmethod
    def from_base_path(cls, saved_path: SavedPath, contours: Contours, consts: CouplingConstants) -> Path:
        """replay the base path of a saved path on a copy of its start state"""
        path = cls(saved_path.name)
        state = saved_path.start.copy()
        excited = saved_path.excitation
        segment = PathSegment(len(state), state.points[excited].sheet_data.copy())
        for value in saved_path.base_path:
            if not state.update(excited, saved_path.component, value, contours, consts):
                logger.warning("Path '%s' stopped at %s = %s", saved_path.name,
                               saved_path.component.value, value)
                break
            sheet_data = state.points[excited].sheet_data
            if sheet_data != segment.sheet_data:
                if len(segment) > 0:
                    path.segments.append(segment)
                segment = PathSegment(len(state), sheet_data.copy())
            segment.push(state)
        if len(segment) > 0:
            path.segments.append(segment)
        return path

    def get(self, component: Component) -> list[list[ComplexArray]]:
        """the values of the chart, indexed by segment and point"""
        return [segment.get(component) for segment in self.segments]

    def plot(self, ax: Axes, component: Component, excitation: Optional[int] = None,
             sheet_data: Optional[SheetData] = None) -> None:
        """
        Plot the trajectories of all points, or of a single one.

        If sheet_data is given, the segments on sheets that look different in the chart are dashed.
        """
        for segment in self.segments:
            ls = "-"
            if sheet_data is not None and not sheet_data.is_same(segment.sheet_data, component):
                ls = "--"
            for i, values in enumerate(segment.get(component)):
                if excitation is not None and i != excitation:
                    continue
                ax.plot(values.real, values.imag, color=f"C{i}", ls=ls, lw=1.5)


class EditablePath:
    """A path that is recorded while states are edited interactively."""

    def __init__(self, component: Component = Component.P) -> None:
        self.states: list[State] = []
        self.component = component

    def push(self, state: State) -> None:
        self.states.append(state.copy())

    def clear(self) -> None:
        self.states = []

    def get(self, component: Component) -> list[list[complex]]:
        """the values of the chart, one list per point"""
        if not self.states:
            return []
        result: list[list[complex]] = [[] for _ in self.states[0].points]
        for state in self.states:
            for i, pt in enumerate(state.points):
                result[i].append(pt.get(component))
        return result
