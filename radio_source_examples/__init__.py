"""
Radio Source Estimation Examples.

This module provides example scripts demonstrating how to locate WiFi
access points and Bluetooth beacons from ranging and RSSI readings.

Examples:
    - Range-only position estimation
    - Joint position, transmitted power and path-loss estimation
"""

__version__ = "0.1.0"
