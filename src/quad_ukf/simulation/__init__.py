"""
===============================================================================
QUAD UKF - Simulation Subsystem
===============================================================================
Drives the estimator offline.

Modules:
    scenarios  -- Synthetic IMU / pose streams (hover, constant spin)
    replay     -- CSV sensor-log loading (pandas) and event replay
===============================================================================
"""
