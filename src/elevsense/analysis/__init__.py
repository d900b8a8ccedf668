"""Numeric estimators for motion samples.

:mod:`elevation` holds the two elevation-angle filters. They are free of I/O
and threading so they can be reused by the engine, offline scripts, and tests.
"""
