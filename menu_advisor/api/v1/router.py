from fastapi import APIRouter

from menu_advisor.api.v1.endpoints import slack_events

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(slack_events.router, prefix="/slack", tags=["Slack"])

__all__ = ["api_router"]
