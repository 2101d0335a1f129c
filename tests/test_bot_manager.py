import json

import numpy as np
import pytest

from bots.exceptions import (
    BotNotFound, ConfigurationError, DuplicateBotError, ReservedIdError,
)
from bots.services.bot_manager import BotManager
from bots.stores import InMemoryBotConfigStore
from bots.types import CopyRef
from tests.factories import config_data, make_config

PRICES = {'BTCUSDT': 50000.0, 'ETHUSDT': 3000.0}


@pytest.mark.parametrize('bot_id', ['copy_123', 'copy_1700000000_abc', CopyRef('copy_x')])
def test_copy_ids_are_reserved(manager, bot_id):
    with pytest.raises(ReservedIdError):
        manager.create_bot(make_config(), bot_id=bot_id)

    assert manager.get_bot_count() == 0
    assert manager.store.load_all() == []


def test_create_bot_generates_id_and_persists(manager):
    bot_id = manager.create_bot(make_config())

    assert bot_id.startswith('bot_')
    assert manager.get_bot_ids() == [bot_id]
    assert manager.get_bot(bot_id).get_config().created_at == manager.clock()
    assert [r['id'] for r in manager.store.load_all()] == [bot_id]


def test_create_bot_accepts_plain_dict(manager):
    bot_id = manager.create_bot(config_data(name='From dict'), bot_id='alpha')

    assert bot_id == 'alpha'
    assert manager.get_bot('alpha').get_config().name == 'From dict'


def test_duplicate_id_rejected(manager):
    manager.create_bot(make_config(), bot_id='alpha')

    with pytest.raises(DuplicateBotError):
        manager.create_bot(make_config(), bot_id='alpha')


def test_invalid_config_rejected(manager):
    with pytest.raises(ConfigurationError):
        manager.create_bot(make_config(win_rate=0.2), bot_id='weak')

    assert not manager.has_bot('weak')


def test_delete_bot(manager):
    manager.create_bot(make_config(), bot_id='alpha')

    manager.delete_bot('alpha')

    assert manager.get_bot('alpha') is None
    assert manager.store.load_all() == []
    with pytest.raises(BotNotFound):
        manager.delete_bot('alpha')


def test_update_bot_config_persists(manager):
    manager.create_bot(make_config(), bot_id='alpha')

    manager.update_bot_config('alpha', {'daily_target_percent': 5.0})

    assert manager.get_bot('alpha').get_config().daily_target_percent == 5.0
    assert manager.store.load_all()[0]['config']['daily_target_percent'] == 5.0


def test_update_unknown_bot(manager):
    with pytest.raises(BotNotFound):
        manager.update_bot_config('missing', {'win_rate': 0.7})


def test_tick_fans_out_to_every_bot(manager):
    manager.create_bot(make_config(), bot_id='btc')
    manager.create_bot(make_config(trading_pair='ETH/USDT'), bot_id='eth')

    manager.tick(PRICES)

    assert len(manager.get_stats('btc').positions) == 1
    assert manager.get_stats('eth').positions[0].entry_price == 3000.0


def test_failing_bot_does_not_stop_the_others(manager, monkeypatch):
    manager.create_bot(make_config(), bot_id='broken')
    manager.create_bot(make_config(), bot_id='healthy')

    def explode(prices):
        raise RuntimeError('boom')

    monkeypatch.setattr(manager.get_bot('broken'), 'tick', explode)
    manager.tick(PRICES)

    assert len(manager.get_stats('healthy').positions) == 1


def test_stats_for_unknown_bot_is_none(manager):
    assert manager.get_stats('missing') is None


def test_aggregated_stats(manager, clock):
    manager.create_bot(make_config(max_concurrent_positions=1), bot_id='a')
    manager.create_bot(make_config(max_concurrent_positions=1), bot_id='b')
    for _ in range(6):
        manager.tick(PRICES)
        clock.advance(121)

    aggregated = manager.get_aggregated_stats()
    all_stats = manager.get_all_stats()

    assert aggregated.total_bots == 2
    assert aggregated.total_trades == 10
    assert aggregated.total_positions == 2
    assert aggregated.total_pnl == pytest.approx(sum(s.total_pnl for s in all_stats))
    assert aggregated.avg_win_rate == pytest.approx(sum(s.win_rate for s in all_stats) / 2)


def test_aggregated_stats_empty(manager):
    aggregated = manager.get_aggregated_stats()

    assert aggregated.total_bots == 0
    assert aggregated.total_pnl == 0


def test_bots_have_independent_random_streams(manager):
    manager.create_bot(make_config(), bot_id='a')
    manager.create_bot(make_config(), bot_id='b')

    manager.tick(PRICES)

    a = manager.get_stats('a').positions[0]
    b = manager.get_stats('b').positions[0]
    assert a.position_size != b.position_size


def test_save_and_load_restore_configs_only(clock):
    store = InMemoryBotConfigStore()
    first = BotManager(store=store, rng=np.random.default_rng(1), clock=clock)
    first.create_bot(make_config(name='Persisted'), bot_id='alpha')
    first.tick(PRICES)
    first.shutdown()

    second = BotManager(store=store, rng=np.random.default_rng(2), clock=clock)
    second.init()

    bot = second.get_bot('alpha')
    assert bot.get_config() == first.get_bot('alpha').get_config()
    assert bot.get_positions() == []
    assert bot.get_trades() == []


def test_load_skips_bad_records(clock):
    store = InMemoryBotConfigStore([
        {'id': 'good', 'config': config_data()},
        {'id': 'copy_1', 'config': config_data()},
        {'id': 'weak', 'config': config_data(win_rate=0.1)},
        {'id': 'partial', 'config': {'name': 'no fields'}},
    ])
    manager = BotManager(store=store, rng=np.random.default_rng(0), clock=clock)

    manager.load()

    assert manager.get_bot_ids() == ['good']


def test_clear_all(manager):
    manager.create_bot(make_config(), bot_id='a')
    manager.create_bot(make_config(), bot_id='b')

    manager.clear_all()

    assert manager.get_bot_count() == 0
    assert manager.store.load_all() == []


def test_export_stats_is_json(manager):
    manager.create_bot(make_config(), bot_id='alpha')
    manager.tick(PRICES)

    exported = json.loads(manager.export_stats())

    assert exported[0]['id'] == 'alpha'
    assert len(exported[0]['positions']) == 1


def test_create_bot_rejects_config_that_misses_its_target(manager):
    # Mostly wide trades push the expected daily P&L well past the target
    with pytest.raises(ConfigurationError):
        manager.create_bot(config_data(tight_mode_percent=10), bot_id='wide')

    assert not manager.has_bot('wide')
    assert manager.store.load_all() == []


def test_update_rejects_config_that_misses_its_target(manager):
    manager.create_bot(make_config(), bot_id='alpha')

    with pytest.raises(ConfigurationError):
        manager.update_bot_config('alpha', {'tight_mode_percent': 10})

    assert manager.get_bot('alpha').get_config().tight_mode_percent == 80.0
    assert manager.store.load_all()[0]['config']['tight_mode_percent'] == 80.0


def test_load_skips_malformed_and_off_target_records(clock):
    store = InMemoryBotConfigStore([
        {'id': 'good', 'config': config_data()},
        {'id': 'string-count', 'config': config_data(max_concurrent_positions='3')},
        {'id': 'not-a-mapping', 'config': 'not a dict'},
        {'id': 'listed', 'config': [1, 2, 3]},
        {'id': 'bool-capital', 'config': config_data(invested_capital=True)},
        {'id': 'wide', 'config': config_data(tight_mode_percent=10)},
    ])
    manager = BotManager(store=store, rng=np.random.default_rng(0), clock=clock)

    manager.load()

    assert manager.get_bot_ids() == ['good']
