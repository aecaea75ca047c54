"""Boundary helpers for hosts that expose MediaVault over HTTP."""
