"""
lbmflow - D2Q9 lattice Boltzmann solver for flow around obstacles.
"""

from .boundary import BoundaryPolicy, RegionKind
from .geometry import Geometry, UnknownGeometryError
from .parameters import SimulationParameters, RampUpSchedule
from .solver import LBMSolver
from .streaming import StreamingScheme

__all__ = [
    "BoundaryPolicy",
    "Geometry",
    "LBMSolver",
    "RampUpSchedule",
    "RegionKind",
    "SimulationParameters",
    "StreamingScheme",
    "UnknownGeometryError",
]
