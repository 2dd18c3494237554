"""
Core domain models, mathematical primitives, and invariants.

This module contains the foundational building blocks of the sale engine
that are independent of the sale lifecycle (fixed-point math, bonding curve,
value objects, error taxonomy, JSON Schema contracts).
"""
