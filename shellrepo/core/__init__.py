"""Coordinator core: identity, catalog subscription, uploads, publish transactions."""
