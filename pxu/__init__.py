from .core.kinematics import CouplingConstants, SheetData, UBranch
from .contours import Component, Contours, Cut, CutType
from .point import Point
from .state import SavedState, State
from .path import EditablePath, Path, SavedPath
from .pxu import Pxu

__all__ = ['CouplingConstants', 'SheetData', 'UBranch',
           'Component', 'Contours', 'Cut', 'CutType',
           'Point', 'State', 'SavedState',
           'Path', 'SavedPath', 'EditablePath', 'Pxu']
