"""
===============================================================================
QUAD UKF - Core Module
===============================================================================
Shared building blocks used by every other subsystem.

Submodules:
    constants        -- State layout, physical constants, default tunables
    errors           -- Per-event failure kinds raised by the filter
    linalg           -- Numeric backend adapter (LDL square root, inversion)
    quaternion       -- (x, y, z, w) quaternion helpers and continuity repair
    data_structures  -- Fixed-capacity pose history ring buffer
    config           -- YAML-backed estimator configuration
===============================================================================
"""
