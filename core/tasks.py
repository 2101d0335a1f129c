# core/tasks.py
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def validate_bot_configs(simulation_days=1000, seed=None):
    """Monte Carlo check of every stored bot configuration"""
    import numpy as np

    from bots.exceptions import ConfigurationError
    from bots.services.validator import validate_bot_config
    from bots.stores import DjangoBotConfigStore
    from bots.types import BotConfig

    rng = np.random.default_rng(seed)
    results = {}

    for record in DjangoBotConfigStore().load_all():
        bot_id = record['id']
        try:
            config = BotConfig.from_dict(record['config'])
        except ConfigurationError as e:
            logger.error(f"Stored config for {bot_id} is unreadable: {e}")
            results[bot_id] = {'valid': False, 'errors': [str(e)], 'warnings': []}
            continue

        result = validate_bot_config(config, rng=rng, simulation_days=simulation_days)
        if not result.valid:
            logger.warning(f"Bot {bot_id} failed validation: {'; '.join(result.errors)}")

        results[bot_id] = {
            'valid': result.valid,
            'convergence_score': result.convergence_score,
            'hit_rate': result.hit_rate,
            'errors': result.errors,
            'warnings': result.warnings,
        }

    logger.info(f"Validated {len(results)} stored bot configs")
    return results
