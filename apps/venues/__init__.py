"""Venues app package.

Venue listings with moderation, photos, owner calendar blocks, dynamic
pricing rules, discount codes and the market (region) tree used by search.
"""
