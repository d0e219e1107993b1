"""Pure staleness pipeline: normalize, resample, stabilize, window, scale, band.

Every function here is a deterministic function of its arguments; window state
and snapshots are owned by the caller and passed in.
"""
