"""
The 'core' package contains the kinematics of a single excitation and the numerical tools.
"""

from .kinematics import CouplingConstants, SheetData, UBranch
from .profiling import Profiler, profile
from .solvers import NewtonSolver, NoConvergenceError, ScipyNewtonSolver, SpuriousRootError

__all__ = [
    'CouplingConstants', 'SheetData', 'UBranch',
    'NewtonSolver', 'ScipyNewtonSolver', 'NoConvergenceError', 'SpuriousRootError',
    'profile', 'Profiler'
]
