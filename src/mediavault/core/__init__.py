"""Core package of MediaVault."""
