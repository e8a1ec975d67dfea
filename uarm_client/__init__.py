"""
Python client for the uArm Swift serial protocol.

Correlates G-code commands sent over a serial line with the asynchronous,
possibly out-of-order replies of the arm controller.
"""

__version__ = "1.0.0"
