"""Radio source localization for indoor positioning.

This package estimates the position (and, with RSSI, the transmitted power
and path-loss exponent) of WiFi access points and Bluetooth beacons from
readings collected at known receiver positions:
- rf: Radio source types, readings and measurement models
- estimators: Linear and nonlinear least squares engines
- radiosource: Stateful radio source estimators
- utils: Geometry helpers
"""

__version__ = "0.1.0"
