"""Rank Math Schema Generator - page classification, JSON-LD graph composition and safe Rank Math persistence."""

__version__ = "1.0.0"
