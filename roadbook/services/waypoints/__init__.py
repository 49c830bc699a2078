from .waypoint_manager import WaypointChange, WaypointCollectionManager

__all__ = ["WaypointChange", "WaypointCollectionManager"]
