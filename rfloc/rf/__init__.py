"""
RF (Radio Frequency) module.

This module defines radio sources, readings and the RF measurement models
used to locate them.

Submodules:
    measurement_models: Power conversion and log-distance path-loss model
    types: Radio sources, readings and located radio sources
    simulation: Synthetic reading generation
"""

from rfloc.rf.measurement_models import (
    DEFAULT_FREQUENCY,
    DEFAULT_PATH_LOSS_EXPONENT,
    SPEED_OF_LIGHT,
    dbm_to_power,
    path_loss_constant_db,
    power_to_dbm,
    propagate_power_variance_to_distance_variance,
    rss_distance_sensitivity,
    rss_pathloss,
    rss_to_distance,
)
from rfloc.rf.simulation import (
    random_receiver_positions,
    simulate_ranging_and_rssi_readings,
    simulate_ranging_readings,
)
from rfloc.rf.types import (
    Beacon,
    LocatedRadioSource,
    LocatedRadioSourceWithPower,
    RadioSource,
    RangingAndRssiReading,
    RangingReading,
    WifiAccessPoint,
)

__all__ = [
    # Constants
    "SPEED_OF_LIGHT",
    "DEFAULT_FREQUENCY",
    "DEFAULT_PATH_LOSS_EXPONENT",
    # Power conversion
    "dbm_to_power",
    "power_to_dbm",
    # Path-loss model
    "path_loss_constant_db",
    "rss_pathloss",
    "rss_to_distance",
    "rss_distance_sensitivity",
    "propagate_power_variance_to_distance_variance",
    # Types
    "RadioSource",
    "WifiAccessPoint",
    "Beacon",
    "RangingReading",
    "RangingAndRssiReading",
    "LocatedRadioSource",
    "LocatedRadioSourceWithPower",
    # Simulation
    "random_receiver_positions",
    "simulate_ranging_readings",
    "simulate_ranging_and_rssi_readings",
]
