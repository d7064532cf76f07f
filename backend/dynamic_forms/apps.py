import logging
from pathlib import Path

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class DynamicFormsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'dynamic_forms'
    verbose_name = 'Dynamic Forms'

    def ready(self):
        """Register every form config found in CONFIG_DIR so formref fields can resolve them"""
        from .conf import get_forms_settings
        from .validation.config_loader import load_config
        from .validation.registry import default_resolver

        config_dir = get_forms_settings().get('CONFIG_DIR')
        if not config_dir:
            return

        directory = Path(config_dir)
        if not directory.is_dir():
            logger.warning(f"Form config directory {directory} does not exist; no forms preloaded")
            return

        resolver = default_resolver()
        for path in sorted(directory.glob('*.json')):
            result = load_config(path)
            if not result.valid:
                messages = '; '.join(f"{error.path}: {error.message}" for error in result.errors)
                logger.warning(f"Skipping invalid form config {path.name}: {messages}")
                continue
            resolver.register(result.config)
            logger.info(f"Loaded form config {result.config.id!r} from {path.name}")
