"""ASGI entrypoint for the attendance API."""

from attendance_guard.api.app import create_app
from attendance_guard.containers import build_container

app = create_app(build_container())
