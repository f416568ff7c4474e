"""
commitcoupling - Git commit coupling analyzer

Reads a repository's commit history to find files that tend to change together
and files touched by many recent contributors, then arranges the per-file
statistics into a directory tree for visualization.
"""

__version__ = "0.1.0"
