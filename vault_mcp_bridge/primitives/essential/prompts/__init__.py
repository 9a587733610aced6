"""Vault prompts backed by Templater notes."""
