import logging
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from typing import List, Optional

from mapguide.core.errors import PlaceStorageError
from mapguide.core.logger import logs
from mapguide.models.geo_model import LatLng
from mapguide.models.map_model import (
    ApplySearchRequest,
    DraftResponse,
    HoverRequest,
    MapOverlay,
    PlaceDraft,
    SearchRequest,
    SearchState,
    SelectRequest,
    ViewportRequest,
    ViewTarget,
)
from mapguide.models.places_model import CategorySummary, Photo, PlaceUpdate, SavedPlace
from mapguide.services.map_session import MapSession
from mapguide.services.search_service import view_target_for
from mapguide.services.session_state import MapSessionRegistry

router = APIRouter(prefix="/map", tags=["map"])

# --- Dependency Injection Helpers ---
def get_registry(request: Request) -> MapSessionRegistry:
    return request.app.state.sessions

def get_session(
    session_id: str,
    registry: MapSessionRegistry = Depends(get_registry),
    authorization: Optional[str] = Header(default=None),
) -> MapSession:
    """Fetch (or open) the session and refresh its place-storage token."""
    session = registry.get_or_create(session_id)
    session.tokens.set_from_header(authorization)
    return session

def storage_failure(e: PlaceStorageError) -> HTTPException:
    logs.log(logging.ERROR, f"Place storage error: {e.message}")
    return HTTPException(status_code=e.status_code, detail=e.message)

# --- Map events ---
@router.post("/{session_id}/move-start", status_code=204)
async def move_start(session: MapSession = Depends(get_session)):
    session.move_start()

@router.post("/{session_id}/move-end", response_model=MapOverlay)
async def move_end(request: ViewportRequest, session: MapSession = Depends(get_session)):
    """
    Settled viewport from the browser. Returns the overlay as it stands right
    now; city and POI lookups continue in the background.
    """
    session.move_end(request.center, request.zoom, request.bounds)
    return session.overlay()

@router.get("/{session_id}/overlay", response_model=MapOverlay)
async def get_overlay(wait: bool = False, session: MapSession = Depends(get_session)):
    if wait:
        await session.wait_idle()
    return session.overlay()

@router.post("/{session_id}/hover", response_model=MapOverlay)
async def hover(request: HoverRequest, session: MapSession = Depends(get_session)):
    session.hover(request.place_id)
    return session.overlay()

@router.post("/{session_id}/select", response_model=MapOverlay)
async def select(request: SelectRequest, session: MapSession = Depends(get_session)):
    session.select(request.place_id)
    return session.overlay()

@router.post("/{session_id}/focus/{place_id}", response_model=ViewTarget)
async def focus(place_id: int, session: MapSession = Depends(get_session)):
    try:
        return await session.focus_place(place_id)
    except PlaceStorageError as e:
        raise storage_failure(e)

@router.get("/{session_id}/categories", response_model=List[CategorySummary])
async def get_categories(session: MapSession = Depends(get_session)):
    try:
        return await session.get_categories()
    except PlaceStorageError as e:
        raise storage_failure(e)

# --- Selected place ---
@router.patch("/{session_id}/selected", response_model=SavedPlace)
async def update_selected(edits: PlaceUpdate, session: MapSession = Depends(get_session)):
    try:
        return await session.update_selected(edits)
    except PlaceStorageError as e:
        raise storage_failure(e)

@router.post("/{session_id}/selected/toggle-visited", response_model=SavedPlace)
async def toggle_visited(session: MapSession = Depends(get_session)):
    try:
        return await session.toggle_visited()
    except PlaceStorageError as e:
        raise storage_failure(e)

@router.delete("/{session_id}/selected", status_code=204)
async def delete_selected(session: MapSession = Depends(get_session)):
    try:
        await session.delete_selected()
    except PlaceStorageError as e:
        raise storage_failure(e)

@router.get("/{session_id}/selected/photos", response_model=List[Photo])
async def get_photos(wait: bool = False, session: MapSession = Depends(get_session)):
    if wait:
        await session.photos_request.wait()
    if session.photos_error:
        raise HTTPException(status_code=502, detail=session.photos_error)
    return session.photos

# --- Location search ---
@router.post("/{session_id}/search", response_model=SearchState)
async def search(request: SearchRequest, session: MapSession = Depends(get_session)):
    session.search.set_query(request.query)
    return session.search.state

@router.get("/{session_id}/search", response_model=SearchState)
async def get_search(wait: bool = False, session: MapSession = Depends(get_session)):
    if wait:
        await session.search.request.wait()
    return session.search.state

@router.post("/{session_id}/search/submit", response_model=SearchState)
async def submit_search(request: SearchRequest, session: MapSession = Depends(get_session)):
    await session.search.submit(request.query)
    return session.search.state

@router.post("/{session_id}/search/apply", response_model=ViewTarget)
async def apply_search(request: ApplySearchRequest, session: MapSession = Depends(get_session)):
    results = session.search.state.results
    if not 0 <= request.index < len(results):
        raise HTTPException(status_code=404, detail="Resultado no encontrado")
    return view_target_for(results[request.index])

# --- Drafts ---
@router.post("/{session_id}/pois/{poi_id}/draft", response_model=DraftResponse)
async def draft_from_poi(poi_id: str, session: MapSession = Depends(get_session)):
    response = session.draft_from_poi(poi_id)
    if response is None:
        raise HTTPException(status_code=404, detail="Sitio no encontrado")
    return response

@router.post("/{session_id}/draft", response_model=PlaceDraft)
async def draft_at_point(point: LatLng, session: MapSession = Depends(get_session)):
    return session.start_draft(point.lat, point.lng)

@router.get("/{session_id}/draft", response_model=DraftResponse)
async def get_draft(wait: bool = False, session: MapSession = Depends(get_session)):
    if wait:
        await session.address_lookup.request.wait()
    return DraftResponse(draft=session.draft)

@router.post("/{session_id}/draft/save", response_model=SavedPlace)
async def save_draft(
    edits: Optional[PlaceDraft] = None,
    session: MapSession = Depends(get_session),
):
    try:
        return await session.save_draft(edits)
    except PlaceStorageError as e:
        raise storage_failure(e)

# --- Lifecycle ---
@router.delete("/{session_id}", status_code=204)
async def close_session(session_id: str, registry: MapSessionRegistry = Depends(get_registry)):
    if not registry.drop(session_id):
        raise HTTPException(status_code=404, detail="Sesion no encontrada")
