"""MLB prediction sync: live feed polling and exactly-once prediction resolution."""

__version__ = "0.1.0"
