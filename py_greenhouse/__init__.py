"""
Greenhouse planner: expansion-order optimizer and placement validation
for the 10x10 greenhouse grid.
"""

__version__ = "0.1.0"
