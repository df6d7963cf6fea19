"""Domain layer — canonical claim events.

This package defines the primitives that every other layer depends on
but never modifies.  Everything here is immutable.
"""
