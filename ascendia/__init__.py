"""
Ascendia - daily fitness missions with streak and level progression.
"""

__version__ = "0.1.0"
