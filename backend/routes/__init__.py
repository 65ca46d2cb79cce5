"""
API route blueprints for the Overhead Satellite Tracker.
"""
from .tracker_routes import tracker_bp

__all__ = ['tracker_bp']
