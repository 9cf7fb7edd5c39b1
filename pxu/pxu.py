from __future__ import annotations

import logging
from typing import Optional

from pxu.contours.contours import Contours
from pxu.core.kinematics import CouplingConstants
from pxu.path import Path
from pxu.state import State

logger = logging.getLogger(__name__)


class Pxu:
    """
    The contours, the current state and the recorded paths for one value of the coupling constants.
    """

    def __init__(self, consts: CouplingConstants, m: int = 1) -> None:
        #: the coupling constants
        self.consts = consts
        #: the branch cuts, built on demand by update_contours()
        self.contours = Contours()
        #: the current state
        self.state = State(m, consts)
        #: recorded paths
        self.paths: list[Path] = []

    def update_contours(self, scope: int = 0) -> bool:
        """advance the construction of the contours, True when complete"""
        return self.contours.update(scope, self.consts)

    def get_path_by_name(self, name: str) -> Optional[Path]:
        for path in self.paths:
            if path.name == name:
                return path
        logger.debug("No path named '%s'", name)
        return None
