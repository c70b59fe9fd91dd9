# Business Services
from keycard.services.availability_service import AvailabilityService
from keycard.services.booking_service import BookingService
from keycard.services.digital_key_service import DigitalKeyService
from keycard.services.invoice_service import InvoiceService
from keycard.services.room_service import RoomService
from keycard.services.task_service import TaskService
from keycard.services.user_service import UserService

__all__ = [
    'AvailabilityService', 'BookingService', 'DigitalKeyService',
    'InvoiceService', 'RoomService', 'TaskService', 'UserService'
]
