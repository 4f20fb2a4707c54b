"""Exceptions raised by the event map core."""


class EventMapError(Exception):
    """Base class for all event map errors."""


class MapValidationError(EventMapError, ValueError):
    """A block or hall definition cannot be saved as given."""


class DuplicateNameError(MapValidationError):
    """A definition with the same name exists and no replace decision was given."""

    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} '{name}' already exists")
        self.kind = kind
        self.name = name


class GroupMismatchError(EventMapError):
    """An operation that must stay inside one visit group spans two groups."""


class IndexOutOfGroupError(EventMapError, IndexError):
    """A group-relative index does not address an entry of that group."""
