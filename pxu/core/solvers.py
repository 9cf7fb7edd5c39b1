"""
Newton-Raphson root finders over the complex plane.

Every chart of a point is re-derived from another chart by solving a scalar
equation f(p) = 0 for the complex momentum p. The solvers report failures by
raising subclasses of numpy.linalg.LinAlgError.
"""

from __future__ import annotations

import logging
from typing import NoReturn, Optional

import numpy as np
import scipy.optimize

from .profiling import profile
from .types import ComplexFunction

logger = logging.getLogger(__name__)


class NoConvergenceError(np.linalg.LinAlgError):
    """The Newton iteration did not reach the requested tolerance."""


class SpuriousRootError(np.linalg.LinAlgError):
    """The Newton iteration converged, but to a root outside the accepted window."""


class AbstractNewtonSolver:
    """
    Abstract base class for all Newton solvers.

    Newton solvers find the root of a holomorphic function f(z) = 0 using a stepping procedure.
    An initial guess z0 and the derivative df/dz need to be supplied.
    A converged root is only accepted if it lies within 'max_displacement' of the initial guess,
    otherwise it is considered to be a spurious root on a different part of the surface.
    """

    def __init__(self) -> None:
        #: maximum number of steps during solve
        self.max_iterations = 50
        #: absolute convergence tolerance for the residuals
        self.convergence_tolerance = 1e-6
        #: maximum modulus of a single Newton step (damping), None for undamped steps
        self.max_step: Optional[float] = None
        #: window (max. |real part|, max. |imaginary part|) of accepted displacements of the
        #: root relative to the initial guess, None to accept any root
        self.max_displacement: Optional[tuple[float, float]] = None
        #: how verbose should the solving be? 0 = quiet, larger numbers = log more details
        self.verbosity = 0
        # internal storage for the number of iterations taken during last solve
        self._iteration_count: Optional[int] = None

    def solve(self, f: ComplexFunction, z0: complex, jac: ComplexFunction) -> complex:
        """solve f(z) = 0 with the initial guess z0 and the derivative jac(z)"""
        raise NotImplementedError(
            "'AbstractNewtonSolver' is an abstract base class - do not use for actual solving!")

    @property
    def niterations(self) -> Optional[int]:
        """access to the number of iterations taken in the last Newton solve"""
        return self._iteration_count

    def norm(self, residual: complex) -> float:
        """the norm used for checking the residuals for convergence"""
        return float(abs(residual))

    def throw_no_convergence_error(self, res: Optional[float] = None) -> NoReturn:
        """throw an error when the solver failed to converge"""
        if res is None:
            res_str = ""
        else:
            res_str = f" Residual: {res:.2e}"
        if self.niterations is None:
            it = ""
        else:
            it = f" after {self.niterations} iterations"
        name = type(self).__name__
        raise NoConvergenceError(name + " did not converge" + it + "!" + res_str)

    def check_displacement(self, z: complex, z0: complex) -> None:
        """raise a SpuriousRootError if the root z is too far off the initial guess z0"""
        if self.max_displacement is None:
            return
        dz = z - z0
        max_re, max_im = self.max_displacement
        if abs(dz.real) > max_re or abs(dz.imag) > max_im:
            raise SpuriousRootError(
                f"{type(self).__name__} converged to a spurious root {z:.6g} (initial guess {z0:.6g})")


class NewtonSolver(AbstractNewtonSolver):
    """Damped Newton solver for a single complex unknown"""

    @profile
    def solve(self, f: ComplexFunction, z0: complex, jac: ComplexFunction) -> complex:
        self._iteration_count = 0
        z0 = complex(z0)
        z = z0
        err = self.norm(f(z))
        while True:
            # converged: accept the root, if it is not a spurious one
            if err < self.convergence_tolerance:
                if self.verbosity > 0:
                    logger.debug("NewtonSolver converged after %d iterations, residual: %.2e",
                                 self._iteration_count, err)
                self.check_displacement(z, z0)
                return z
            if self._iteration_count >= self.max_iterations:
                break
            # do a classical Newton step
            df = jac(z)
            if df == 0:
                break
            dz = complex(f(z) / df)
            # limit the step size
            if self.max_step is not None and abs(dz) > self.max_step:
                dz *= self.max_step / abs(dz)
            z -= dz
            self._iteration_count += 1
            # leave early if we ran into a singularity
            if not np.isfinite(z):
                break
            err = self.norm(f(z))
            if not np.isfinite(err):
                break
            if self.verbosity > 1:
                logger.debug("Newton step #%d, residual: %.2e", self._iteration_count, err)
        # if we didn't converge, throw an error
        self.throw_no_convergence_error(err)


class ScipyNewtonSolver(AbstractNewtonSolver):
    """
    A Newton solver that uses scipy.optimize.newton for solving.
    Does not support step size damping, the attribute 'max_step' is ignored.
    """

    @profile
    def solve(self, f: ComplexFunction, z0: complex, jac: ComplexFunction) -> complex:
        root, result = scipy.optimize.newton(f, z0, fprime=jac,
                                             tol=self.convergence_tolerance,
                                             maxiter=self.max_iterations,
                                             full_output=True, disp=False)
        self._iteration_count = result.iterations
        err = self.norm(f(root))
        # scipy measures convergence by the step size, we check the residuals as well
        if not result.converged or not np.isfinite(err) or err > self.convergence_tolerance:
            self.throw_no_convergence_error(err)
        if self.verbosity > 0:
            logger.debug("ScipyNewtonSolver converged after %d iterations, residual: %.2e",
                         self._iteration_count, err)
        self.check_displacement(complex(root), complex(z0))
        return root
