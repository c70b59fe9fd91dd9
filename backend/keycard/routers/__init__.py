# API Routers
from keycard.routers import auth, bookings, guest_bookings, rooms, tasks, digital_keys, invoices

__all__ = ['auth', 'bookings', 'guest_bookings', 'rooms', 'tasks', 'digital_keys', 'invoices']
