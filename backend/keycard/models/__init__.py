# Ontology Models
from keycard.models.ontology import (
    User, RoomType, Room, Booking, DigitalKey, Invoice, HousekeepingTask
)

__all__ = [
    'User', 'RoomType', 'Room', 'Booking', 'DigitalKey', 'Invoice', 'HousekeepingTask'
]
