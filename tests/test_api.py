import pytest
from rest_framework.test import APIClient

from bots.services.runtime import SimulationRuntime, install_runtime
from copy_trading.services.copy_service import UserCopyService
from trading.services.price_feed import SimulatedPriceFeed
from tests.factories import config_data

pytestmark = pytest.mark.django_db


@pytest.fixture
def runtime(manager, clock):
    runtime = SimulationRuntime(
        SimulatedPriceFeed(['BTCUSDT']),
        manager,
        UserCopyService(manager, clock=clock),
    )
    install_runtime(runtime)
    yield runtime
    install_runtime(None)


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username='trader', password='secret')


@pytest.fixture
def client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def alpha(client, runtime):
    response = client.post('/api/v1/bots/', {**config_data(), 'id': 'alpha'}, format='json')
    assert response.status_code == 201
    return 'alpha'


def test_requires_authentication(runtime):
    response = APIClient().get('/api/v1/bots/')

    assert response.status_code in (401, 403)


def test_no_runtime_is_service_unavailable(client):
    install_runtime(None)

    response = client.get('/api/v1/bots/')

    assert response.status_code == 503


def test_create_and_list_bots(client, runtime, alpha):
    runtime.manager.tick({'BTCUSDT': 50000.0})

    response = client.get('/api/v1/bots/')

    assert response.status_code == 200
    assert [b['id'] for b in response.data] == ['alpha']
    assert len(response.data[0]['positions']) == 1


def test_create_bot_generates_id(client, runtime):
    response = client.post('/api/v1/bots/', config_data(), format='json')

    assert response.status_code == 201
    assert response.data['id'].startswith('bot_')


def test_create_bot_with_copy_id_is_rejected(client, runtime):
    response = client.post('/api/v1/bots/', {**config_data(), 'id': 'copy_123'}, format='json')

    assert response.status_code == 400
    assert 'error' in response.data
    assert runtime.manager.get_bot_count() == 0


def test_duplicate_bot_conflicts(client, alpha):
    response = client.post('/api/v1/bots/', {**config_data(), 'id': 'alpha'}, format='json')

    assert response.status_code == 409


def test_invalid_config_is_bad_request(client, runtime):
    response = client.post('/api/v1/bots/', config_data(win_rate=1.5), format='json')

    assert response.status_code == 400


def test_retrieve_bot(client, alpha):
    response = client.get('/api/v1/bots/alpha/')

    assert response.status_code == 200
    assert response.data['config']['name'] == 'Test Bot'
    assert response.data['daily_progress']['target_percent'] == 3.0
    assert response.data['daily_progress']['return_on_capital_percent'] == 0.0


def test_retrieve_looks_the_bot_up_once(client, runtime, alpha, monkeypatch):
    bot = runtime.manager.get_bot(alpha)
    lookups = iter([bot])
    # A second lookup would see the bot as already deleted
    monkeypatch.setattr(runtime.manager, 'get_bot', lambda pk: next(lookups, None))

    response = client.get('/api/v1/bots/alpha/')

    assert response.status_code == 200
    assert response.data['id'] == 'alpha'
    assert response.data['config']['name'] == 'Test Bot'
    assert response.data['daily_progress']['day'] is None


def test_create_rejects_off_target_variance_mix(client, runtime):
    response = client.post('/api/v1/bots/', {**config_data(tight_mode_percent=10), 'id': 'wide'},
                           format='json')

    assert response.status_code == 400
    assert not runtime.manager.has_bot('wide')


def test_retrieve_unknown_bot(client, runtime):
    assert client.get('/api/v1/bots/missing/').status_code == 404


def test_partial_update(client, alpha):
    response = client.patch('/api/v1/bots/alpha/', {'daily_target_percent': 4.0}, format='json')

    assert response.status_code == 200
    assert response.data['daily_target_percent'] == 4.0


def test_partial_update_rejects_invalid_result(client, alpha):
    response = client.patch('/api/v1/bots/alpha/', {'win_rate': 0.2}, format='json')

    assert response.status_code == 400


def test_delete_bot(client, alpha):
    assert client.delete('/api/v1/bots/alpha/').status_code == 204
    assert client.delete('/api/v1/bots/alpha/').status_code == 404


def test_aggregated(client, alpha):
    response = client.get('/api/v1/bots/aggregated/')

    assert response.status_code == 200
    assert response.data['total_bots'] == 1


def test_validate_bot(client, alpha):
    response = client.post('/api/v1/bots/alpha/validate/', {'simulation_days': 1000, 'seed': 1}, format='json')

    assert response.status_code == 200
    assert response.data['valid'] is True


def test_copy_lifecycle(client, alpha):
    created = client.post('/api/v1/copies/', {'master_bot_id': 'alpha', 'invested_amount': 1000}, format='json')
    assert created.status_code == 201
    copy_id = created.data['id']
    assert copy_id.startswith('copy_')

    listed = client.get('/api/v1/copies/')
    assert [c['id'] for c in listed.data] == [copy_id]

    detail = client.get(f'/api/v1/copies/{copy_id}/')
    assert detail.status_code == 200
    assert detail.data['stats']['name'] == 'Test Bot Copy'

    assert client.delete(f'/api/v1/copies/{copy_id}/').status_code == 409

    closed = client.post(f'/api/v1/copies/{copy_id}/close/')
    assert closed.status_code == 200
    assert closed.data['status'] == 'CLOSED'
    assert client.post(f'/api/v1/copies/{copy_id}/close/').status_code == 409

    assert client.delete(f'/api/v1/copies/{copy_id}/').status_code == 204
    assert client.get(f'/api/v1/copies/{copy_id}/').status_code == 404


def test_copy_of_unknown_master(client, runtime):
    response = client.post('/api/v1/copies/', {'master_bot_id': 'nope', 'invested_amount': 1000}, format='json')

    assert response.status_code == 404


def test_other_users_copies_are_hidden(client, alpha, runtime):
    other = runtime.copies.create_copy('alpha', 500.0, owner_id='someone-else')

    assert client.get('/api/v1/copies/').data == []
    assert client.get(f'/api/v1/copies/{other.id}/').status_code == 404


def test_master_aggregate(client, alpha):
    client.post('/api/v1/copies/', {'master_bot_id': 'alpha', 'invested_amount': 1000}, format='json')
    client.post('/api/v1/copies/', {'master_bot_id': 'alpha', 'invested_amount': 3000}, format='json')

    response = client.get('/api/v1/copies/masters/alpha/')

    assert response.status_code == 200
    assert response.data['total_copiers'] == 2
    assert response.data['avg_investment_per_copy'] == 2000.0
    assert response.data['master_bot_stats']['id'] == 'alpha'


def test_health_check(client, runtime):
    response = client.get('/health/')

    assert response.status_code == 200
    assert response.json()['simulator'] == 'running'
