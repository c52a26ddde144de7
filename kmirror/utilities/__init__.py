"""
Utilities that are not specific to mirroring, but are used across the package.
"""
