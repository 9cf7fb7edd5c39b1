"""
The 'contours' package contains the branch cuts of all charts and their construction.
"""

from .cut import Component, Cut, CutType, CutVisibilityCondition
from .contours import Contours, ContoursSettings, Crossing

__all__ = ['Component', 'Cut', 'CutType', 'CutVisibilityCondition',
           'Contours', 'ContoursSettings', 'Crossing']
