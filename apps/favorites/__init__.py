"""Favorites app package.

Guests bookmark venues they like.
"""
