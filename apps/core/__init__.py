"""Core app package.

Platform level endpoints: the health check and file uploads.
"""
