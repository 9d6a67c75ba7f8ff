"""Users app package.

Defines the custom user model with marketplace roles (guest, venue owner,
vendor, platform admin) and localisation preferences. Use
``apps.users.models.CustomUser`` as the AUTH_USER_MODEL throughout the
project.
"""
