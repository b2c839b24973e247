"""A caching, rate-limited UDP DNS server that relays cache misses to upstream resolvers."""

__version__ = "0.1.0"