from django.apps import AppConfig
import logging
import os
import sys

logger = logging.getLogger(__name__)


class CommonConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'common'

    def ready(self):
        """
        Start the background scheduler when enabled.
        Only in the serving process, never for migrations, tests or one-off commands.
        """
        from django.conf import settings
        if not getattr(settings, 'ENABLE_BACKGROUND_SCHEDULER', False):
            return

        # runserver autoreloader child only
        if 'runserver' in sys.argv and os.environ.get('RUN_MAIN') != 'true':
            return
        if len(sys.argv) > 1 and sys.argv[1] in ['migrate', 'makemigrations', 'test', 'collectstatic', 'shell']:
            return

        try:
            from .scheduler import start_scheduler
            start_scheduler()
            logger.info("Background task scheduler initialized")
        except Exception as e:
            logger.error(f"Failed to initialize scheduler: {e}", exc_info=True)
