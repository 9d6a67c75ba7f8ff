"""Reviews app package.

Guest reviews of completed bookings and the venue rating derived from them.
"""
