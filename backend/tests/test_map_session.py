import json

import pytest

from mapguide.core.errors import PlaceStorageError
from mapguide.models.geo_model import LatLng
from mapguide.models.map_model import PlaceDraft
from mapguide.models.places_model import PlaceUpdate
from mapguide.services.map_session import LOADING_MESSAGE, NO_CITY_MESSAGE, ZOOM_HINT_MESSAGE

from conftest import GRANADA_CENTER, GRANADA_VIEWPORT, bounds, overpass_query

SAVED = {
    "id": 7,
    "name": "Mirador de San Nicolas",
    "lat": 37.1811,
    "lng": -3.5927,
    "status": "PENDING",
    "category": {"id": 2, "name": "Miradores", "icon": "binoculars"},
}


def settle(session, box=GRANADA_VIEWPORT, zoom=16, center=GRANADA_CENTER):
    session.move_start()
    return session.move_end(center, zoom, box)


@pytest.mark.asyncio
async def test_rapid_moves_make_one_reverse_and_one_overpass(make_session, backend):
    session = make_session()
    for shift in (0.0, 0.001, 0.002, 0.003, 0.004):
        box = bounds(37.15 + shift, 37.19 + shift, -3.60, -3.58)
        settle(session, box, center=LatLng(lat=37.17 + shift, lng=-3.59))
    await session.wait_idle()

    assert backend.count("reverse") == 1
    assert backend.count("overpass") == 1
    overlay = session.overlay()
    assert overlay.city_name == "Granada"
    assert len(overlay.poi_markers) == 2
    assert overlay.city_status_message == "2 sitios en Granada"


@pytest.mark.asyncio
async def test_granada_scenario_is_scoped_to_the_viewport(make_session, backend):
    session = make_session()
    settle(session)
    await session.wait_idle()

    assert backend.count("overpass") == 1
    assert "(37.15,-3.6,37.19,-3.58)" in overpass_query(backend.calls("overpass")[0])


@pytest.mark.asyncio
async def test_panning_inside_city_reuses_city(make_session, backend):
    session = make_session()
    settle(session)
    await session.wait_idle()

    settle(session, bounds(37.16, 37.20, -3.62, -3.60), center=LatLng(lat=37.18, lng=-3.61))
    await session.wait_idle()

    assert backend.count("reverse") == 1
    assert backend.count("overpass") == 2


@pytest.mark.asyncio
async def test_zooming_out_clears_everything(make_session, backend):
    session = make_session()
    settle(session)
    await session.wait_idle()

    settle(session, bounds(37.0, 37.35, -3.80, -3.40), zoom=13)
    await session.wait_idle()

    overlay = session.overlay()
    assert session.city is None
    assert overlay.poi_markers == []
    assert overlay.city_status_message == ZOOM_HINT_MESSAGE
    assert backend.count("reverse") == 1
    assert backend.count("overpass") == 1


@pytest.mark.asyncio
async def test_status_line_while_loading_and_on_error(make_session, backend):
    session = make_session()
    assert session.city_status_message() is None

    settle(session)
    await session.city_resolver.request.wait()
    assert session.poi_fetcher.in_flight
    assert session.city_status_message() == LOADING_MESSAGE
    assert session.overlay().fetch_in_flight

    await session.wait_idle()
    backend.failing.add("overpass")
    settle(session, bounds(37.16, 37.18, -3.62, -3.60), center=LatLng(lat=37.17, lng=-3.61))
    await session.wait_idle()

    overlay = session.overlay()
    assert overlay.city_status_message == "No pudimos cargar los sitios."
    assert overlay.poi_error == "No pudimos cargar los sitios."
    assert overlay.poi_markers == []


@pytest.mark.asyncio
async def test_saved_places_refresh_needs_a_token(make_session, backend, tokens):
    session = make_session()
    settle(session)
    await session.wait_idle()
    assert backend.count("places") == 0

    tokens.set_token("abc123")
    backend.places_payload = [SAVED]
    settle(session, bounds(37.16, 37.20, -3.62, -3.60), center=LatLng(lat=37.18, lng=-3.61))
    await session.wait_idle()

    assert backend.count("places") == 1
    assert backend.calls("places")[0].url.params["bbox"] == "-3.62,37.16,-3.6,37.2"
    markers = session.overlay().saved_place_markers
    assert [m.marker_id for m in markers] == ["place-7"]
    assert markers[0].icon_key == "binoculars"


@pytest.mark.asyncio
async def test_saved_places_failure_is_reported(make_session, backend, tokens):
    tokens.set_token("abc123")
    backend.failing.add("places")
    session = make_session()
    settle(session)
    await session.wait_idle()

    assert session.overlay().places_error == "Servicio no disponible"


@pytest.mark.asyncio
async def test_hover_and_select_raise_markers(make_session, backend, tokens):
    tokens.set_token("abc123")
    backend.places_payload = [SAVED, dict(SAVED, id=8, name="Carmen de los Martires")]
    session = make_session()
    settle(session)
    await session.wait_idle()

    session.hover(8)
    assert [m.z_index_offset for m in session.overlay().saved_place_markers] == [0, 1000]
    session.hover(None)
    session.select(7)
    assert [m.highlighted for m in session.overlay().saved_place_markers] == [True, False]
    await session.wait_idle()


@pytest.mark.asyncio
async def test_focus_place_selects_and_flies(make_session, backend, tokens):
    tokens.set_token("abc123")
    backend.routes["GET /api/places/7"] = (200, SAVED)
    session = make_session()

    target = await session.focus_place(7)

    assert target.zoom == 16
    assert target.center == LatLng(lat=37.1811, lng=-3.5927)
    assert session.selected_id == 7
    assert [p.id for p in session.saved_places] == [7]
    await session.wait_idle()
    assert session.photos_error == "No encontrado"


@pytest.mark.asyncio
async def test_draft_from_poi_autofills_address(make_session, backend):
    session = make_session()
    settle(session, zoom=17)
    await session.wait_idle()
    poi = session.poi_fetcher.pois[0]

    response = session.draft_from_poi(poi.id)
    assert response.draft.name == "Museo de la Alhambra"
    assert response.draft.address_loading
    assert response.target.zoom == 17
    await session.wait_idle()

    assert session.draft.address == "Calle Reyes Catolicos 1, Granada"
    assert not session.draft.address_loading
    assert session.draft_from_poi("node-999") is None


@pytest.mark.asyncio
async def test_stale_address_is_ignored(make_session, backend):
    session = make_session()
    session.start_draft(37.17, -3.59)
    session.start_draft(37.18, -3.60)
    await session.wait_idle()

    assert backend.count("address") == 1
    assert session.draft.lat == 37.18
    assert session.draft.address == "Calle Reyes Catolicos 1, Granada"


@pytest.mark.asyncio
async def test_save_draft_creates_and_selects(make_session, backend, tokens):
    tokens.set_token("abc123")
    session = make_session()
    settle(session)
    await session.wait_idle()

    session.start_draft(37.1765, -3.5979, name="  Bar Los Diamantes ")
    await session.wait_idle()
    saved = await session.save_draft()

    assert saved.name == "Bar Los Diamantes"
    assert saved.address == "Calle Reyes Catolicos 1, Granada"
    assert session.draft is None
    assert session.selected_id == saved.id
    assert session.saved_places[0].id == saved.id
    await session.wait_idle()
    # Initial refresh plus the one after saving
    assert backend.count("places") == 2


@pytest.mark.asyncio
async def test_save_draft_validation(make_session):
    session = make_session()
    with pytest.raises(PlaceStorageError) as exc:
        await session.save_draft()
    assert exc.value.status_code == 404

    with pytest.raises(PlaceStorageError) as exc:
        await session.save_draft(PlaceDraft(lat=37.17, lng=-3.59, name="   "))
    assert exc.value.status_code == 422


@pytest.mark.asyncio
async def test_close_cancels_pending_work(make_session, backend):
    session = make_session(debounce=0.05)
    settle(session)
    session.close()
    await session.wait_idle()

    assert backend.count("reverse") == 0
    assert not session.overlay().fetch_in_flight


MONACHIL_REVERSE = {
    "place_id": 777,
    "display_name": "Monachil, Granada, Andalucia",
    "boundingbox": ["37.0", "37.1", "-3.55", "-3.45"],
    "address": {"town": "Monachil"},
}


@pytest.mark.asyncio
async def test_moving_to_another_city_reloads_pois_for_it(make_session, backend):
    session = make_session()
    settle(session)
    await session.wait_idle()
    assert session.poi_fetcher.last_key.city_id == 4242

    backend.reverse_payload = MONACHIL_REVERSE
    settle(session, bounds(37.04, 37.06, -3.52, -3.48), center=LatLng(lat=37.05, lng=-3.5))
    # The old city's POIs are gone before the new city is known
    assert session.poi_fetcher.pois == []
    await session.wait_idle()

    assert backend.count("reverse") == 2
    assert backend.count("overpass") == 2
    assert "(37.04,-3.52,37.06,-3.48)" in overpass_query(backend.calls("overpass")[1])
    assert session.poi_fetcher.last_key.city_id == 777
    overlay = session.overlay()
    assert overlay.city_name == "Monachil"
    assert overlay.city_status_message == "2 sitios en Monachil"


@pytest.mark.asyncio
async def test_stale_city_lookup_does_not_replace_current_city(make_session, backend):
    session = make_session()
    settle(session)
    await session.wait_idle()

    backend.reverse_payload = MONACHIL_REVERSE
    settle(session, bounds(37.04, 37.06, -3.52, -3.48), center=LatLng(lat=37.05, lng=-3.5))
    settle(session)
    await session.wait_idle()

    assert backend.count("reverse") == 1
    assert session.city.name == "Granada"
    assert session.poi_fetcher.last_key.city_id == 4242
    assert session.overlay().city_status_message == "2 sitios en Granada"


@pytest.mark.asyncio
async def test_area_without_city_says_so(make_session, backend):
    backend.reverse_payload = {"place_id": 1, "display_name": "Mar Mediterraneo", "address": {}}
    session = make_session()
    settle(session, bounds(36.49, 36.51, -3.51, -3.49), center=LatLng(lat=36.5, lng=-3.5))
    await session.wait_idle()

    assert session.city is None
    assert session.overlay().city_status_message == NO_CITY_MESSAGE
    assert backend.count("overpass") == 0


async def session_with_selection(make_session, backend, tokens):
    tokens.set_token("abc123")
    backend.places_payload = [SAVED]
    backend.routes["GET /api/places/7/photos"] = (200, [{"id": 3, "url": "/uploads/3.jpg"}])
    session = make_session()
    settle(session)
    await session.wait_idle()
    session.select(7)
    await session.wait_idle()
    return session


@pytest.mark.asyncio
async def test_selecting_a_place_loads_its_photos(make_session, backend, tokens):
    session = await session_with_selection(make_session, backend, tokens)

    assert [photo.url for photo in session.photos] == ["/uploads/3.jpg"]
    session.select(None)
    assert session.photos == []
    assert backend.count("GET /api/places/7/photos") == 1


@pytest.mark.asyncio
async def test_update_selected_place(make_session, backend, tokens):
    session = await session_with_selection(make_session, backend, tokens)
    backend.routes["PATCH /api/places/7"] = (200, dict(SAVED, name="Mirador", notes="Al atardecer"))

    updated = await session.update_selected(PlaceUpdate(name="  Mirador ", notes="Al atardecer ", category_id=2))

    body = json.loads(backend.calls("PATCH /api/places/7")[0].content)
    assert body == {"name": "Mirador", "notes": "Al atardecer", "categoryId": 2}
    assert updated.notes == "Al atardecer"
    assert session.saved_places[0].name == "Mirador"

    with pytest.raises(PlaceStorageError) as exc:
        await session.update_selected(PlaceUpdate(name=" "))
    assert exc.value.status_code == 422


@pytest.mark.asyncio
async def test_toggle_visited_sets_and_clears_visit_date(make_session, backend, tokens):
    session = await session_with_selection(make_session, backend, tokens)
    backend.routes["PATCH /api/places/7"] = (200, dict(SAVED, status="VISITED", visitedAt="2024-06-01T18:00:00Z"))

    visited = await session.toggle_visited()
    body = json.loads(backend.calls("PATCH /api/places/7")[0].content)
    assert body["status"] == "VISITED"
    assert body["visitedAt"] is not None
    assert visited.visited_at is not None

    backend.routes["PATCH /api/places/7"] = (200, SAVED)
    await session.toggle_visited()
    body = json.loads(backend.calls("PATCH /api/places/7")[1].content)
    assert body == {"status": "PENDING", "visitedAt": None}
    assert session.saved_places[0].status == "PENDING"


@pytest.mark.asyncio
async def test_delete_selected_place(make_session, backend, tokens):
    session = await session_with_selection(make_session, backend, tokens)
    backend.routes["DELETE /api/places/7"] = (204, None)

    await session.delete_selected()

    assert session.saved_places == []
    assert session.selected_id is None
    assert session.photos == []
    with pytest.raises(PlaceStorageError) as exc:
        await session.delete_selected()
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_categories_are_loaded_once(make_session, backend, tokens):
    tokens.set_token("abc123")
    backend.routes["GET /api/categories"] = (200, [{"id": 2, "name": "Miradores"}])
    session = make_session()

    assert [c.name for c in await session.get_categories()] == ["Miradores"]
    await session.get_categories()
    assert backend.count("GET /api/categories") == 1
