"""
Modules package for lumina-schedule.

One sub-package per behaviour: request intent, resolution, device access,
sync and enforcement.
"""
