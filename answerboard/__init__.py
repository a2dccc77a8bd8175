"""Everyone's Answer Board backend.

Reaction / highlight update protocol over a row-oriented store, with
versioned cache invalidation and per-tenant board access.
"""

__version__ = "0.4.0"
