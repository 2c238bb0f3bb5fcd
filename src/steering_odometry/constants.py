"""
Numerical constants shared by the kinematics and odometry modules.
"""

# Below this angular displacement [rad] the exact arc integration is replaced
# by 2nd order Runge-Kutta. Both schemes agree to O(rotation^2) at the switch.
INTEGRATION_EPSILON = 1e-6

# Below this forward speed [m/s] inverse kinematics substitutes +/- epsilon for
# Vx, so the steering angle saturates toward +/- pi/2 instead of dividing by zero.
STEERING_EPSILON = 1e-6

# Rolling mean window used for velocity smoothing
DEFAULT_ROLLING_WINDOW_SIZE = 10
