"""Private-pool transfer router.

Moves funds into and out of a privacy pool, swapping through an intent
network when the other side of the transfer holds a different asset.
"""

__version__ = "0.1.0"
