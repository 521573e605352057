"""
===============================================================================
QUAD UKF - Quadrotor Unscented Kalman Filter
===============================================================================
Recursive state estimator that fuses a high-rate IMU stream with a lower-rate
absolute pose stream (SLAM / motion capture) into a 16-state belief over the
vehicle's kinematics.

Subpackages:
    core        -- Constants, errors, linear algebra, quaternions, config
    navigation  -- Generic UKF engine, quadrotor model, belief store, ingest
    telemetry   -- Input/output message records and the pose publisher
    simulation  -- Synthetic sensor streams and CSV log replay
===============================================================================
"""

__version__ = "0.1.0"
