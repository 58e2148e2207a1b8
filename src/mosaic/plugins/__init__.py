"""Built-in plugins shipped with the Mosaic server."""

from .checkins import CheckInsPlugin
from .events import EventsPlugin
from .people import PeoplePlugin

__all__ = ["CheckInsPlugin", "EventsPlugin", "PeoplePlugin"]
