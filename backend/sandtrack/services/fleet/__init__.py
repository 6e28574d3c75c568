"""Truck and driver availability."""
