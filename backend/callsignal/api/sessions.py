from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from callsignal.api.deps import get_coordinator
from callsignal.services.session.coordinator import SessionCoordinator

router = APIRouter()


@router.get("")
async def list_sessions(coordinator: SessionCoordinator = Depends(get_coordinator)) -> List[Dict[str, Any]]:
    """Live call sessions (read-only)."""
    return [session.to_dict() for session in coordinator.list_sessions()]


@router.get("/{session_id}")
async def get_session(session_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)) -> Dict[str, Any]:
    session = coordinator.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session.to_dict()
