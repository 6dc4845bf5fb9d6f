from themepark_booking.infrastructure.http.redeam_client import RedeamHttpClient
from themepark_booking.infrastructure.http.smartorder_client import SmartOrderHttpClient

__all__ = ["RedeamHttpClient", "SmartOrderHttpClient"]
