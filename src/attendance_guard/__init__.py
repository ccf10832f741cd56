"""Attendance integrity engine: geofenced sessions and attendance rollups."""
