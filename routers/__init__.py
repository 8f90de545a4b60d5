from routers import auth, bookings, data, events, rooming_lists

__all__ = ["auth", "bookings", "data", "events", "rooming_lists"]
