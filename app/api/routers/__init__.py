"""
app/api/routers package marker.
"""

from app.api.routers.agent_router import router as agent_router

__all__ = [
    "agent_router",
]
