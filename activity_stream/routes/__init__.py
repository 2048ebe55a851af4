from .activity import router as activity_router

__all__ = [
    "activity_router",
]
