"""Common type aliases used throughout the package."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, TypeAlias

import numpy as np
import numpy.typing

if TYPE_CHECKING:
    import matplotlib.axes

# Type for complex-valued arrays, e.g. the sampled path of a cut
ComplexArray: TypeAlias = numpy.typing.NDArray[np.complex128]

# Objects that can be coerced into a complex value or array
ComplexLike: TypeAlias = complex | float | np.complexfloating | ComplexArray

# Scalar complex function and its derivative, as consumed by the Newton solvers
ComplexFunction: TypeAlias = Callable[[complex], complex]

# Common type for matplotlib axes
if TYPE_CHECKING:
    Axes: TypeAlias = matplotlib.axes.Axes
else:
    Axes: TypeAlias = Any

# Dictionary for serialized data
DataDict: TypeAlias = dict[str, Any]
