"""In-memory implementations for tests and single-process hosts."""

from themepark_booking.infrastructure.in_memory.token_repo import InMemoryTokenRepo

__all__ = ["InMemoryTokenRepo"]
