"""
===============================================================================
QUAD UKF - Constants and State Layout
===============================================================================
Central repository for the fixed index layout of the 16-element quadrotor
state vector, the 10-element measurement vector, physical constants, and the
default tunables of the estimator. SI units throughout (meters, seconds,
radians).
===============================================================================
"""

# =============================================================================
# STATE VECTOR LAYOUT
# =============================================================================
NUM_STATES = 16
NUM_MEASUREMENTS = 10

POS_X, POS_Y, POS_Z = 0, 1, 2
QUAT_X, QUAT_Y, QUAT_Z, QUAT_W = 3, 4, 5, 6
VEL_X, VEL_Y, VEL_Z = 7, 8, 9
ANGVEL_X, ANGVEL_Y, ANGVEL_Z = 10, 11, 12
ACCEL_X, ACCEL_Y, ACCEL_Z = 13, 14, 15

POSITION = slice(POS_X, POS_Z + 1)
QUATERNION = slice(QUAT_X, QUAT_W + 1)
VELOCITY = slice(VEL_X, VEL_Z + 1)
ANGULAR_VELOCITY = slice(ANGVEL_X, ANGVEL_Z + 1)
ACCELERATION = slice(ACCEL_X, ACCEL_Z + 1)

# Published covariance block: position + orientation rows/cols
POSE_COV_DIM = 6

# =============================================================================
# PHYSICAL CONSTANTS
# =============================================================================
GRAVITY = 9.81                                    # m/s^2

# =============================================================================
# DEFAULT TUNABLES
# =============================================================================
PROCESS_NOISE_VARIANCE = 0.01
MEASUREMENT_NOISE_VARIANCE = 0.01
INITIAL_COVARIANCE_VARIANCE = 0.01
INITIAL_POSITION = (0.0, 0.0, 1.0)                # one meter above the origin
INITIAL_DT = 0.0001                               # s

POSE_ARRAY_SIZE = 10000                           # poses kept for plotting
LOCK_TIMEOUT = 0.1                                # s
MAP_FRAME_ID = "map"

# Scaled unscented transform parameters
UKF_ALPHA = 1.0                   # lambda = 0: Wm[0] = 0, Wc[0] = 2
UKF_BETA = 2.0
UKF_KAPPA = 0.0

# =============================================================================
# NUMERICAL TOLERANCES
# =============================================================================
NEGATIVE_PIVOT_TOLERANCE = 1e-12   # relative to max |P|
SINGULAR_CONDITION_LIMIT = 1e12    # cond(Pzz) above this is degenerate
QUAT_NORM_TOLERANCE = 1e-12
COVARIANCE_TOLERANCE = 1e-9        # asymmetry norm and most negative eigenvalue
