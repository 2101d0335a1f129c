import math

import pytest

from bots.exceptions import BotNotFound, CopyNotFound, CopyStateError
from copy_trading.services.copy_service import UserCopyService, project
from copy_trading.stores import InMemoryUserCopyStore
from copy_trading.types import ACTIVE, CLOSED, UserCopy
from tests.factories import make_bot, make_config

PRICES = {'BTCUSDT': 50000.0}


def run(manager, clock, cycles):
    for _ in range(cycles):
        manager.tick(PRICES)
        clock.advance(121)


@pytest.fixture
def service(manager, clock):
    manager.create_bot(make_config(max_concurrent_positions=1, invested_capital=10000.0), bot_id='master')
    return UserCopyService(manager, store=InMemoryUserCopyStore(), clock=clock)


def test_copy_only_sees_trades_after_it_was_created(manager, clock, service):
    run(manager, clock, 5)
    created_at = clock()
    user_copy = service.create_copy('master', 2500.0, owner_id='u1')
    run(manager, clock, 6)

    master_trades = manager.get_bot('master').get_trades()
    after = [t for t in master_trades if t.closed_at >= created_at]
    stats = service.get_copy_stats(user_copy.id)

    assert len(master_trades) == 10
    assert stats.trades_count == len(after) == 6
    assert stats.total_pnl == pytest.approx(0.25 * sum(t.pnl for t in after))
    assert all(t.closed_at >= created_at for t in stats.trades)


def test_copy_scales_trades_and_positions(manager, clock, service):
    user_copy = service.create_copy('master', 5000.0, owner_id='u1')
    run(manager, clock, 3)
    manager.tick(PRICES)

    stats = service.get_copy_stats(user_copy.id)
    master = manager.get_bot('master')

    by_id = {t.id: t for t in master.get_trades()}
    for trade in stats.trades:
        original = by_id[trade.id]
        assert trade.pnl == pytest.approx(original.pnl * 0.5)
        assert trade.position_size == pytest.approx(original.position_size * 0.5)
        assert trade.amount == pytest.approx(original.amount * 0.5)
        assert trade.pnl_percent == original.pnl_percent

    assert len(stats.positions) == 1
    assert stats.positions[0].position_size == pytest.approx(master.get_positions()[0].position_size * 0.5)
    assert stats.name == 'Test Bot Copy'


def test_new_copy_has_empty_history(manager, clock, service):
    run(manager, clock, 4)

    user_copy = service.create_copy('master', 1000.0, owner_id='u1')
    stats = service.get_copy_stats(user_copy.id)

    assert stats.trades_count == 0
    assert stats.total_pnl == 0
    assert stats.win_rate == 0


@pytest.mark.parametrize('capital', [0.0, -100.0, float('nan'), float('inf')])
def test_unusable_master_capital_projects_to_zero(clock, capital):
    master = make_bot(clock, max_concurrent_positions=1, invested_capital=capital)
    user_copy = UserCopy(id='copy_1', owner_id='u1', master_bot_id='bot-test',
                         invested_amount=1000.0, created_at=clock())
    for _ in range(4):
        master.tick(PRICES)
        clock.advance(121)

    stats = project(user_copy, master)

    assert stats.trades_count == 3
    for value in (stats.total_pnl, stats.win_rate, stats.avg_win, stats.avg_loss):
        assert math.isfinite(value)
    assert stats.total_pnl == 0
    assert all(t.pnl == 0 for t in stats.trades)


def test_close_copy_freezes_its_result(manager, clock, service):
    user_copy = service.create_copy('master', 2000.0, owner_id='u1')
    run(manager, clock, 4)

    closed = service.close_copy(user_copy.id)
    final_stats = service.get_copy_stats(user_copy.id)
    run(manager, clock, 4)

    assert closed.status == CLOSED
    assert closed.closed_at is not None
    assert closed.final_value == pytest.approx(2000.0 + closed.final_pnl)
    assert closed.final_pnl == pytest.approx(final_stats.total_pnl)
    assert service.get_copy_stats(user_copy.id).total_pnl == pytest.approx(closed.final_pnl)
    assert service.get_copy_stats(user_copy.id).positions == []


def test_close_only_from_active(service):
    user_copy = service.create_copy('master', 2000.0, owner_id='u1')
    service.close_copy(user_copy.id)

    with pytest.raises(CopyStateError):
        service.close_copy(user_copy.id)


def test_delete_requires_closed_copy(service):
    user_copy = service.create_copy('master', 2000.0, owner_id='u1')

    with pytest.raises(CopyStateError):
        service.delete_copy(user_copy.id)

    service.close_copy(user_copy.id)
    service.delete_copy(user_copy.id)

    with pytest.raises(CopyNotFound):
        service.get_copy(user_copy.id)


def test_create_copy_validation(service):
    with pytest.raises(BotNotFound):
        service.create_copy('missing', 1000.0, owner_id='u1')
    with pytest.raises(ValueError):
        service.create_copy('master', 0, owner_id='u1')
    with pytest.raises(ValueError):
        service.create_copy('master', float('nan'), owner_id='u1')


def test_copy_ids_use_copy_namespace(service):
    user_copy = service.create_copy('master', 1000.0, owner_id='u1')

    assert user_copy.id.startswith('copy_')
    assert user_copy.status == ACTIVE


def test_list_copies_by_owner(service):
    service.create_copy('master', 1000.0, owner_id='u1')
    service.create_copy('master', 2000.0, owner_id='u2')
    service.create_copy('master', 3000.0, owner_id='u1')

    assert len(service.list_copies()) == 3
    assert sorted(c.invested_amount for c in service.list_copies(owner_id='u1')) == [1000.0, 3000.0]


def test_master_aggregated_stats(service):
    service.create_copy('master', 1000.0, owner_id='u1')
    service.create_copy('master', 3000.0, owner_id='u2')
    closed = service.create_copy('master', 500.0, owner_id='u3')
    service.close_copy(closed.id)

    aggregated = service.get_master_aggregated_stats('master')

    assert aggregated['total_copiers'] == 2
    assert aggregated['total_invested'] == 4000.0
    assert aggregated['avg_investment_per_copy'] == 2000.0
    assert aggregated['master_bot_stats'].id == 'master'
    assert {c['owner_id'] for c in aggregated['copiers']} == {'u1', 'u2'}


def test_stats_for_copy_of_deleted_master(manager, service):
    open_copy = service.create_copy('master', 1000.0, owner_id='u1')
    closed_copy = service.create_copy('master', 1000.0, owner_id='u1')
    service.close_copy(closed_copy.id)
    manager.delete_bot('master')

    with pytest.raises(BotNotFound):
        service.get_copy_stats(open_copy.id)
    assert service.get_copy_stats(closed_copy.id).total_pnl == 0


def test_closed_copy_keeps_its_stats_after_master_history_rolls_over(manager, clock):
    manager.create_bot(
        make_config(max_concurrent_positions=1, max_trades_history=5), bot_id='short-ledger'
    )
    service = UserCopyService(manager, store=InMemoryUserCopyStore(), clock=clock)
    user_copy = service.create_copy('short-ledger', 5000.0, owner_id='u1')
    run(manager, clock, 6)

    closed = service.close_copy(user_copy.id)
    at_close = service.get_copy_stats(user_copy.id)
    run(manager, clock, 10)

    stats = service.get_copy_stats(user_copy.id)
    master_trades = manager.get_bot('short-ledger').get_trades()

    assert all(t.closed_at > closed.closed_at for t in master_trades)
    assert at_close.trades_count == 5
    assert closed.final_stats['trades_count'] == 5
    assert stats.trades_count == 5
    assert stats.total_pnl == pytest.approx(closed.final_pnl)
    assert stats.win_rate == pytest.approx(at_close.win_rate)
    assert stats.avg_win == pytest.approx(at_close.avg_win)
    assert stats.name == 'Test Bot Copy'
    assert stats.positions == []
