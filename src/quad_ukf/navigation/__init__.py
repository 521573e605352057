"""
===============================================================================
QUAD UKF - Navigation Subsystem
===============================================================================
State estimation for the quadrotor.

Modules:
    ukf            -- Generic Unscented Kalman Filter engine (sigma points)
    quad_model     -- Quadrotor state layout, process and observation models
    belief_store   -- Lock-guarded single record holding the current belief
    sensor_ingest  -- IMU / pose event handlers driving predict and correct
===============================================================================
"""
