from typing import Callable, List, Optional

from mapguide.models.geo_model import BoundingBox, LatLng, ViewportState

SettledListener = Callable[[ViewportState], None]
BoundsListener = Callable[[BoundingBox], None]


class ViewportTracker:
    """
    Follows map movement and emits only settled viewports.

    Nothing is emitted while a drag is running; ``move_end`` publishes the
    raw bounds first (saved-places refresh) and then the settled viewport
    (city/POI pipeline).
    """

    def __init__(self):
        self.viewport: Optional[ViewportState] = None
        self.moving = False
        self._settled_listeners: List[SettledListener] = []
        self._bounds_listeners: List[BoundsListener] = []

    def on_settled(self, listener: SettledListener):
        self._settled_listeners.append(listener)

    def on_bounds_changed(self, listener: BoundsListener):
        self._bounds_listeners.append(listener)

    def move_start(self):
        self.moving = True

    def move_end(self, center: LatLng, zoom: int, bounds: BoundingBox) -> ViewportState:
        self.moving = False
        viewport = ViewportState(center=center, zoom=zoom, bounds=bounds)
        self.viewport = viewport
        for listener in self._bounds_listeners:
            listener(bounds)
        for listener in self._settled_listeners:
            listener(viewport)
        return viewport
