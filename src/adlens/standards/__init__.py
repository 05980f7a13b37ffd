"""Naming standards for headers and grouping labels."""
