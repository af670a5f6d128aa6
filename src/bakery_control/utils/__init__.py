"""Utilities package for the Bakery Control application."""
