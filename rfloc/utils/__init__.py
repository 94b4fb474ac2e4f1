"""
Utility functions for radio source localization.

This module provides geometry helpers shared by the solvers: the distance
Jacobian of a candidate source and receiver geometry checks.
"""

from .geometry import range_jacobian, check_receiver_geometry

__all__ = [
    'range_jacobian',
    'check_receiver_geometry',
]
