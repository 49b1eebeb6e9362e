"""Domain layer: identifiers and EDC payload templates.

This layer depends only on stdlib.
It must never import from services, infrastructure, commands, or config.
"""
