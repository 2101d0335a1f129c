# bots/apps.py
import logging
import sys

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class BotsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'bots'

    def ready(self):
        if not settings.SIMULATOR.get('AUTOSTART'):
            return
        # Management commands (migrate, run_simulator, ...) host nothing
        if 'manage.py' in sys.argv[0] and 'runserver' not in sys.argv:
            return

        from bots.services.runtime import build_runtime, install_runtime

        runtime = build_runtime()
        install_runtime(runtime)
        runtime.start_in_background()
        logger.info("Simulation runtime autostarted")
