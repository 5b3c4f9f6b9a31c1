"""
Obstacle Geometry

Rasterizes named obstacle shapes into a boolean solid mask of shape
(ny, nx). Every shape is placed around (0.25 * nx, 0.5 * ny) and sized
relative to the channel height.
"""

from enum import Enum

import numpy as np


class UnknownGeometryError(ValueError):
    """Raised for a shape name that has no rasterizer."""


class Geometry(Enum):
    """Obstacle shapes understood by the geometry generator."""
    NONE = "none"
    CIRCLE = "circle"
    SQUARE = "square"
    AIRFOIL = "airfoil"
    FLAT_PLATE = "flat_plate"
    TRIANGLE = "triangle"

    @classmethod
    def from_name(cls, name):
        """
        Resolve a geometry from an enum member or a (case-insensitive) name.

        Raises
        ------
        UnknownGeometryError
            If the name is not recognized
        """
        if isinstance(name, cls):
            return name
        if isinstance(name, str):
            key = name.strip().lower().replace("-", "_").replace(" ", "_")
            key = _ALIASES.get(key, key)
            for member in cls:
                if member.value == key:
                    return member
        raise UnknownGeometryError(
            f"Unknown geometry {name!r}; expected one of "
            f"{', '.join(member.value for member in cls)}"
        )


_ALIASES = {
    "plate": "flat_plate",
    "cylinder": "circle",
}

# NACA 0012 section
NACA_THICKNESS = 0.12
ANGLE_OF_ATTACK_DEG = 5.0


def _cell_offsets(nx, ny):
    """Offsets (dx, dy) of every cell from the obstacle anchor point."""
    cx = nx * 0.25
    cy = ny * 0.5
    x = np.arange(nx, dtype=np.float64)
    y = np.arange(ny, dtype=np.float64)
    X, Y = np.meshgrid(x, y)
    return X - cx, Y - cy


def create_circle_mask(nx, ny):
    """Disk of radius 0.16 * ny."""
    dx, dy = _cell_offsets(nx, ny)
    radius = ny * 0.16
    return dx * dx + dy * dy < radius * radius


def create_square_mask(nx, ny):
    """Axis-aligned square of half-size 0.15 * ny."""
    dx, dy = _cell_offsets(nx, ny)
    size = ny * 0.15
    return (np.abs(dx) < size) & (np.abs(dy) < size)


def naca_half_thickness(x_c, chord, thickness=NACA_THICKNESS):
    """
    NACA 4-digit symmetric half-thickness at normalized chord position x_c.

    yt = 5 t c (0.2969 sqrt(x) - 0.1260 x - 0.3516 x^2 + 0.2843 x^3 - 0.1015 x^4)
    """
    x_c = np.clip(x_c, 0.0, 1.0)
    return 5.0 * thickness * chord * (
        0.2969 * np.sqrt(x_c)
        - 0.1260 * x_c
        - 0.3516 * x_c ** 2
        + 0.2843 * x_c ** 3
        - 0.1015 * x_c ** 4
    )


def create_airfoil_mask(nx, ny, angle_of_attack=ANGLE_OF_ATTACK_DEG):
    """
    NACA 0012 profile with chord ny / 3.5, leading edge at the anchor point,
    pitched by `angle_of_attack` degrees.
    """
    dx, dy = _cell_offsets(nx, ny)
    chord = ny / 3.5
    alpha = np.deg2rad(angle_of_attack)

    # Rotate by -alpha into the chord frame
    x_rot = dx * np.cos(-alpha) - dy * np.sin(-alpha)
    y_rot = dx * np.sin(-alpha) + dy * np.cos(-alpha)

    on_chord = (x_rot >= 0.0) & (x_rot <= chord)
    yt = naca_half_thickness(x_rot / chord, chord)
    return on_chord & (np.abs(y_rot) <= yt)


def create_flat_plate_mask(nx, ny):
    """Thin plate, half-length 0.25 * ny, half-thickness 2.5 cells."""
    dx, dy = _cell_offsets(nx, ny)
    length = ny * 0.25
    thickness = 2.5
    return (np.abs(dx) < length) & (np.abs(dy) < thickness)


def create_triangle_mask(nx, ny):
    """
    Streamlined wedge pointing downstream.

    The blunt leading edge sits on the anchor with half-width 0.8 * size;
    the half-width tapers linearly to zero at the trailing point
    size = 0.125 * ny downstream.
    """
    dx, dy = _cell_offsets(nx, ny)
    size = ny * 0.125
    half_width = 0.8 * (size - dx)
    return (dx >= 0.0) & (dx < size) & (np.abs(dy) < half_width)


_RASTERIZERS = {
    Geometry.CIRCLE: create_circle_mask,
    Geometry.SQUARE: create_square_mask,
    Geometry.AIRFOIL: create_airfoil_mask,
    Geometry.FLAT_PLATE: create_flat_plate_mask,
    Geometry.TRIANGLE: create_triangle_mask,
}


def create_obstacle_mask(geometry, nx, ny):
    """
    Build a fresh obstacle mask for a geometry.

    Parameters
    ----------
    geometry : Geometry or str
        Shape to rasterize
    nx, ny : int
        Grid dimensions

    Returns
    -------
    mask : ndarray
        Boolean mask (True for solid), shape (ny, nx)

    Raises
    ------
    UnknownGeometryError
        If `geometry` is not a known shape
    """
    geometry = Geometry.from_name(geometry)
    mask = np.zeros((ny, nx), dtype=bool)

    rasterize = _RASTERIZERS.get(geometry)
    if rasterize is not None:
        mask |= rasterize(nx, ny)

    return mask
