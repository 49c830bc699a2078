"""Roadbook: waypoints, driving routes, AI narratives and saved itineraries."""

__version__ = "1.0.0"
