"""
Shared Kernel

Base entity, value object and event classes, the unit of work and the
message bus used by the availability, quote and reservation apps.
"""
