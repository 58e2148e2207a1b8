"""Role names used by the built-in plugins."""

ORGANIZER = "Organizer"
VOLUNTEER = "Volunteer"
SPONSOR = "Sponsor"

STAFF = frozenset({ORGANIZER, VOLUNTEER, SPONSOR})
