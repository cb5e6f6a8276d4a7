"""Wildlife Sighting Tracker - REST API for short-lived, map-based animal sightings"""

__version__ = "1.0.0"
