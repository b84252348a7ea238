"""renderwatch progress monitor — snapshots and terminal rendering.

Modules
-------
projection
    ``MonitorSnapshot`` — a frozen, point-in-time view of one render job.
renderer
    ``MonitorRenderer`` turns ``MonitorSnapshot`` into Rich renderables
    for terminal display, including continuous ``Rich.Live`` mode.
"""
