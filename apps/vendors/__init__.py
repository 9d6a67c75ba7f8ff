"""Vendors app package.

Profiles of event service providers (catering, photography, music and
so on) with the service packages they sell.
"""
