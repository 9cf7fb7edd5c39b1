"""Execution time profiling of the expensive entry points (contour construction, point updates)."""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class MethodProfile:
    """
    Accumulated execution time and number of calls of one method.

    Serves as a node in the tree of nested method calls.
    """

    def __init__(self, name: str) -> None:
        #: qualified name of the method
        self.name = name
        #: accumulated execution time in seconds
        self.execution_time = 0.0
        #: the total number of calls
        self.ncalls = 0
        #: profiles of the methods called from within this method
        self.nested_profiles: dict[str, MethodProfile] = {}

    def child(self, name: str) -> MethodProfile:
        """get (or create) the profile of a nested method"""
        if name not in self.nested_profiles:
            self.nested_profiles[name] = MethodProfile(name)
        return self.nested_profiles[name]

    def flattened(self) -> dict[str, MethodProfile]:
        """merge all nested profiles of the same name into a flat dictionary"""
        data: dict[str, MethodProfile] = {}
        profiles = [self] if self.ncalls > 0 else []
        for nested in self.nested_profiles.values():
            profiles += nested.flattened().values()
        for p in profiles:
            merged = data.setdefault(p.name, MethodProfile(p.name))
            merged.execution_time += p.execution_time
            merged.ncalls += p.ncalls
        return data

    def report_lines(self, total_time: float, depth: int = 0) -> list[str]:
        """one formatted line per profile in the tree, sorted by execution time"""
        lines = []
        if self.ncalls > 0:
            name = "  " * depth + self.name
            rel = self.execution_time / total_time if total_time > 0 else 0.0
            lines.append(f"{name:<60} {self.execution_time:10.3f}s {rel:8.1%} {self.ncalls:8d}")
            depth += 1
        for p in sorted(self.nested_profiles.values(), key=lambda p: p.execution_time, reverse=True):
            lines += p.report_lines(total_time, depth)
        return lines


class Profiler:
    """
    Static class for accessing/controlling the profiling of the code.
    Profiling is inactive until Profiler.start() is called.
    """

    _start_time: Optional[float] = None
    _root_profile = MethodProfile("")
    _current_profile = _root_profile

    @staticmethod
    def start() -> None:
        """(Re)start the Profiler"""
        Profiler._root_profile = MethodProfile("")
        Profiler._current_profile = Profiler._root_profile
        Profiler._start_time = time.perf_counter()

    @staticmethod
    def stop() -> None:
        """deactivate the Profiler"""
        Profiler._start_time = None

    @staticmethod
    def is_active() -> bool:
        return Profiler._start_time is not None

    @staticmethod
    def stats(nested: bool = True) -> dict[str, MethodProfile]:
        """the profiles of all the methods called since the start, nested or flattened"""
        if nested:
            return dict(Profiler._root_profile.nested_profiles)
        return Profiler._root_profile.flattened()

    @staticmethod
    def log_summary() -> None:
        """log a tree view of the execution times of the decorated methods"""
        if Profiler._start_time is None:
            logger.info("Profiler is inactive.")
            return
        total_time = time.perf_counter() - Profiler._start_time
        header = f"{'method name':<60} {'total':>11} {'relative':>8} {'#calls':>8}"
        lines = Profiler._root_profile.report_lines(total_time)
        logger.info("Profiler results:\n%s\n%s", header, "\n".join(lines))


def profile(method: Callable) -> Callable:
    """decorator that measures the execution time of a method, while the Profiler is active"""

    @wraps(method)
    def do_profile(*args, **kw):
        if not Profiler.is_active():
            return method(*args, **kw)
        parent = Profiler._current_profile
        current = parent.child(method.__qualname__)
        Profiler._current_profile = current
        ts = time.perf_counter()
        try:
            return method(*args, **kw)
        finally:
            current.execution_time += time.perf_counter() - ts
            current.ncalls += 1
            Profiler._current_profile = parent

    return do_profile
