"""
MAVLink Monitor - live aggregate of decoded MAVLink telemetry

Keeps the last value, update rate, staleness and a bounded history for
every (system, component, message) seen on a decoded record stream.
"""

__version__ = "0.1.0"
__author__ = "Ground Tools Team"
