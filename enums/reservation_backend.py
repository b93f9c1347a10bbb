from enum import Enum


class ReservationBackend(Enum):
    MEMORY = "memory"        # In-process map, lost on restart (single instance only)
    DATABASE = "database"    # inventory_reservations table in the shared store
