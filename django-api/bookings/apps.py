from django.apps import AppConfig


class BookingsConfig(AppConfig):
    name = "bookings"
    verbose_name = "Offers and bookings"

    def ready(self) -> None:
        # Connects the audit receivers.
        from bookings import signals  # noqa: F401
