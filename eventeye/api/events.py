"""
Events Router - Event creation, listing and dashboard stats
"""
from typing import Any, Dict
from fastapi import APIRouter, Depends

from eventeye.dependencies import get_current_user, get_event_service, get_stats_service
from eventeye.schemas.schemas import (
    CreateEventRequest,
    EventListResponse,
    EventResponse,
    Stats,
)
from eventeye.services.event_service import EventService
from eventeye.services.stats_service import StatsService

router = APIRouter()


@router.get("/events", response_model=EventListResponse)
def list_events(
    event_service: EventService = Depends(get_event_service),
    stats_service: StatsService = Depends(get_stats_service),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """
    All events with their certificate counts, newest first,
    together with the dashboard totals.
    """
    return EventListResponse(
        events=event_service.list_events(),
        stats=stats_service.compute_stats()
    )


@router.post("/events", response_model=EventResponse)
def create_event(
    request: CreateEventRequest,
    event_service: EventService = Depends(get_event_service),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Create an event. eventType defaults to 'free'."""
    event = event_service.create_event(
        name=request.name,
        description=request.description,
        date=request.date,
        organizer=request.organizer,
        event_type=request.event_type
    )
    return EventResponse(event=event)


@router.get("/stats", response_model=Stats)
def get_stats(
    stats_service: StatsService = Depends(get_stats_service),
    user: Dict[str, Any] = Depends(get_current_user)
):
    """Totals of events, certificates and delivered certificates."""
    return stats_service.compute_stats()
