"""
D2Q9 Lattice Constants

Defines the D2Q9 lattice model shared by every solver instance.
"""
import numpy as np

# D2Q9 lattice velocities
#     6   2   5
#       \ | /
#     3 - 0 - 1
#       / | \
#     7   4   8

# Lattice velocity components
EX = np.array([0, 1, 0, -1, 0, 1, -1, -1, 1], dtype=np.int32)
EY = np.array([0, 0, 1, 0, -1, 1, 1, -1, -1], dtype=np.int32)

# Lattice weights
W = np.array([4/9, 1/9, 1/9, 1/9, 1/9, 1/36, 1/36, 1/36, 1/36], dtype=np.float64)

# Opposite direction indices (for bounce-back)
OPPOSITE = np.array([0, 3, 4, 1, 2, 7, 8, 5, 6], dtype=np.int32)

# Float copies for compiled kernels
EX_F = EX.astype(np.float64)
EY_F = EY.astype(np.float64)

for _table in (EX, EY, W, OPPOSITE, EX_F, EY_F):
    _table.flags.writeable = False

# Lattice sound speed squared
CS2 = 1.0 / 3.0

# Number of lattice velocities
Q = 9
