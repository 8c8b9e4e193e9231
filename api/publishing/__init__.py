"""Publishing engine: post lifecycle, version history and cache invalidation."""
