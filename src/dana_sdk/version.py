"""Version information for the DANA Python SDK"""

__version__ = "0.1.0"
