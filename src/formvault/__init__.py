"""
formvault: cryptographic and storage core of a local password manager.

This package derives a master key from a password, seals individual
credential fields with authenticated encryption, and stores named forms of
prompt/answer fields in a flat tab-separated vault format.
"""

__version__ = "1.0.0"
