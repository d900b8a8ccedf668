"""Development tools and standalone helpers.

Includes the capture replay CLI, the Matplotlib session plotter, and the
opt-in debug instrumentation hooks.
"""
