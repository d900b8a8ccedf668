"""Data input/output helpers (export tables, CSV files, and file paths).

Utility modules here keep disk-level concerns isolated from the engine:
- :mod:`export` zips recorded series into rows and writes them as CSV.
- :mod:`log_loader` reads exported CSVs back for offline review.
- :mod:`file_paths` centralises naming of export files.
"""
