import numpy as np
import pytest

from bots.presets import MASTER_BOTS, generate_presets, master_bot_config
from bots.services.validator import simulate_days, validate_bot_config
from tests.factories import make_config


def test_well_formed_config_is_valid():
    config = make_config(win_rate=0.65, daily_target_percent=3.0, trades_per_day=40)

    result = validate_bot_config(config, rng=np.random.default_rng(0), simulation_days=1000)

    assert result.valid
    assert result.errors == []
    assert result.convergence_score >= 0.9
    assert result.mean_daily_pnl == pytest.approx(3.0, rel=0.1)
    assert 0 <= result.hit_rate <= 1


def test_basic_config_errors_skip_simulation():
    result = validate_bot_config(make_config(win_rate=0.2), rng=np.random.default_rng(0))

    assert not result.valid
    assert len(result.errors) == 1
    assert result.mean_daily_pnl == 0


def test_mostly_wide_trades_miss_target():
    config = make_config(tight_mode_percent=10)

    result = validate_bot_config(config, rng=np.random.default_rng(0), simulation_days=500)

    assert not result.valid
    assert result.mean_daily_pnl > 3.0 * 1.1


def test_simulation_shape_and_seed():
    config = make_config()

    first = simulate_days(config, 50, np.random.default_rng(4))
    second = simulate_days(config, 50, np.random.default_rng(4))

    assert first.shape == (50,)
    assert np.array_equal(first, second)


def test_summary_mentions_status():
    result = validate_bot_config(make_config(), rng=np.random.default_rng(1), simulation_days=2000)

    assert result.summary().startswith('Configuration VALID')


@pytest.mark.parametrize('bot_id', sorted(MASTER_BOTS))
def test_master_bots_are_valid(bot_id):
    config = master_bot_config(bot_id)
    config.validate()

    result = validate_bot_config(config, rng=np.random.default_rng(2), simulation_days=5000)

    assert result.valid, result.errors


def test_generated_presets_validate():
    presets = generate_presets(np.random.default_rng(3))

    assert len(presets) == 10
    assert [p.name for p in presets[:3]] == [
        'Conservative Bot #1', 'Conservative Bot #2', 'Conservative Bot #3',
    ]
    for preset in presets:
        preset.validate()


def test_unknown_master_bot():
    assert master_bot_config('nope') is None
