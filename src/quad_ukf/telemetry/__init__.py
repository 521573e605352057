"""
===============================================================================
QUAD UKF - Telemetry Subsystem
===============================================================================
Records exchanged with the surrounding middleware.

Modules:
    messages   -- IMU / pose inputs and stamped pose outputs
    publisher  -- Emits pose, pose-with-covariance and pose-history records
===============================================================================
"""
