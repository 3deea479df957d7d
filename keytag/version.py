"""KeyTag Meta information.
   KeyTag protects a master key with a PIN for storage on an NFC tag.
"""
__title__ = 'keytag'
__description__ = (
   'PIN-protected master key payloads (PBKDF2 + AES-GCM) '
   'for passive storage media such as NFC tags.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2026 KeyTag contributors'
__author__ = 'KeyTag contributors'
__author_email__ = 'keytag@users.noreply.github.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/keytag/keytag'
