import threading

from django.apps import AppConfig


class HabitsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "habits"

    def __init__(self, app_name, app_module):
        super().__init__(app_name, app_module)
        self._service = None
        self._lock = threading.Lock()

    def get_service(self):
        """The process's HabitDataService, built and initialized on first use."""
        if self._service is None:
            with self._lock:
                if self._service is None:
                    from habits.repository import HabitRepository
                    from habits.services.habit_data import HabitDataService

                    service = HabitDataService(HabitRepository.from_settings())
                    service.initialize()
                    self._service = service
        return self._service

    def reset_service(self) -> None:
        with self._lock:
            if self._service is not None:
                self._service.repository.close()
            self._service = None
