"""
Command line interface (console script ``citibike``).
"""
