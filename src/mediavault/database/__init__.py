"""Database package of MediaVault."""
