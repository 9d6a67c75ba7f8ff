"""
Custom Django model fields for sensitive data.

EncryptedCharField encrypts values before they reach the database and
decrypts them on load.
"""

import logging

from cryptography.fernet import InvalidToken
from django.db import models

from .encryption import decrypt_string, encrypt_string

logger = logging.getLogger(__name__)


class EncryptedCharField(models.TextField):
    """Text column holding a Fernet token; Python code only sees plaintext."""

    description = "Encrypted text field"

    def __init__(self, *args, **kwargs):
        # max_length is validated on plaintext; storage is unbounded text
        self.max_length_validation = kwargs.pop('max_length', None)
        super().__init__(*args, **kwargs)

    def deconstruct(self):
        name, path, args, kwargs = super().deconstruct()
        if self.max_length_validation is not None:
            kwargs['max_length'] = self.max_length_validation
        return name, path, args, kwargs

    def from_db_value(self, value, expression, connection):
        if not value:
            return value
        try:
            return decrypt_string(value)
        except InvalidToken:
            logger.error("Could not decrypt value of %s; key rotated?", self.name)
            return ''

    def get_prep_value(self, value):
        if value is None or value == '':
            return ''
        return encrypt_string(str(value))

    def to_python(self, value):
        if value is None:
            return value
        return str(value)
