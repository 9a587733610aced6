"""Vault tools. Each module exposes a ``register_*`` function."""
