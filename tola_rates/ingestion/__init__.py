"""Acquisition and normalisation of raw gold/silver readings."""
