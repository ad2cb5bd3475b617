"""
Projection Engine

Financial calculators backed by a projection and multi-debt allocation engine.
"""

__version__ = "0.1.0"
