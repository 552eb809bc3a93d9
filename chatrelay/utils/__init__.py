"""
UTILITIES PACKAGE
=================

Helpers used by the services (no HTTP, no business logic):

  masking - mask_key(key): shows only the first characters of a credential for logs.
"""
