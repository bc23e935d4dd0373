"""
Boatyard - Project lifecycle and change-control engine for boat building.
"""

__version__ = "0.1.0"
