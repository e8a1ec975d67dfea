"""
uArm Swift command constants.

See the uArm Swift Pro Developer Guide v1.0.6.
"""

CARTESIAN_MODE = 0
POLAR_MODE = 1

# Servo ids for G2202
SERVO_BOTTOM = 0
SERVO_LEFT = 1
SERVO_RIGHT = 2
SERVO_HAND = 3

# Work modes reported by P2400
MODE_NORMAL = 0
MODE_LASER = 1
MODE_3D_PRINTING = 2
MODE_UNIVERSAL_HOLDER = 3

# Queries
CMD_GET_JOINTS_ANGLE = "P2200"
CMD_GET_DEVICE_NAME = "P2201"
CMD_GET_HARDWARE_VERSION = "P2202"
CMD_GET_SOFTWARE_VERSION = "P2203"
CMD_GET_API_VERSION = "P2204"
CMD_GET_UID = "P2205"
CMD_GET_POSITION_CARTESIAN = "P2220"
CMD_GET_POSITION_POLAR = "P2221"
CMD_GET_PUMP_STATUS = "P2231"
CMD_GET_GRIPPER_STATUS = "P2232"
CMD_GET_MODE = "P2400"
