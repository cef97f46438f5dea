"""Manifest building, render planning and asset storage."""
