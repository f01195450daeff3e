# bomservice/api/dependencies.py
from __future__ import annotations

from fastapi import Request

from bomservice.config import Settings


# Dependency helper for FastAPI; mirrors get_db for the app's Settings
def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
