"""
Shared Kernel

Value objects, currency helpers and infrastructure pieces shared by all
Party2Go domain apps.
"""
