import pytest
import requests

from ktrawler.sources import GithubSearchSource, Repo, SourceError
from ktrawler.sources import core as sources_core


class FakeResponse:

    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Error')

    def json(self):
        return self.payload


def fake_search_api(total_count, requests_made):
    def fake_get(url, auth=None, params=None):
        requests_made.append(dict(params))
        start = (params['page'] - 1) * params['per_page']
        end = min(start + params['per_page'], total_count)
        return FakeResponse({
            'total_count': total_count,
            'items': [
                {'full_name': f'owner{i}/repo{i}', 'clone_url': f'https://github.com/owner{i}/repo{i}.git'}
                for i in range(start, end)
            ],
        })
    return fake_get


def test_repo_properties():
    repo = Repo(full_name='JetBrains/kotlin', clone_url='https://github.com/JetBrains/kotlin.git')
    assert repo.owner == 'JetBrains'
    assert repo.name == 'kotlin'
    assert str(repo) == 'JetBrains/kotlin'
    assert repo == Repo(full_name='JetBrains/kotlin', clone_url='git://github.com/JetBrains/kotlin.git')


def test_pagination_stops_at_total_count(monkeypatch):
    requests_made = []
    monkeypatch.setattr(sources_core.requests, 'get', fake_search_api(250, requests_made))

    results = list(GithubSearchSource().repo_generator())

    assert len(requests_made) == 3
    assert [params['page'] for params in requests_made] == [1, 2, 3]
    assert all(params['per_page'] == 100 for params in requests_made)
    assert all(params['q'] == 'language:kotlin' for params in requests_made)
    assert len(results) == 250
    assert [index for _, index, _ in results] == list(range(1, 251))
    assert {total for _, _, total in results} == {250}
    assert results[0][0] == Repo(full_name='owner0/repo0', clone_url='')


def test_pagination_stops_on_empty_page(monkeypatch):
    requests_made = []

    def fake_get(url, auth=None, params=None):
        requests_made.append(params['page'])
        return FakeResponse({'total_count': 5000, 'items': []})

    monkeypatch.setattr(sources_core.requests, 'get', fake_get)
    assert list(GithubSearchSource().repo_generator()) == []
    assert requests_made == [1]


def test_process_repos_stops_when_callback_returns_false(monkeypatch):
    requests_made = []
    monkeypatch.setattr(sources_core.requests, 'get', fake_search_api(250, requests_made))
    seen = []

    def callback(repo, index, total_count):
        seen.append(index)
        return index < 5

    GithubSearchSource().process_repos(callback)
    assert seen == [1, 2, 3, 4, 5]
    assert len(requests_made) == 1


def test_search_http_error_is_fatal(monkeypatch):
    monkeypatch.setattr(sources_core.requests, 'get',
                        lambda url, auth=None, params=None: FakeResponse({}, status_code=403))
    with pytest.raises(SourceError, match='403'):
        list(GithubSearchSource().repo_generator())


def test_search_connection_error_is_fatal(monkeypatch):
    def fake_get(url, auth=None, params=None):
        raise requests.ConnectionError('connection refused')

    monkeypatch.setattr(sources_core.requests, 'get', fake_get)
    with pytest.raises(SourceError, match='connection refused'):
        GithubSearchSource().process_repos(lambda repo, index, total_count: True)


def test_search_malformed_response_is_fatal(monkeypatch):
    monkeypatch.setattr(sources_core.requests, 'get',
                        lambda url, auth=None, params=None: FakeResponse({'message': 'rate limited'}))
    with pytest.raises(SourceError):
        list(GithubSearchSource().repo_generator())


def test_search_auth(monkeypatch):
    auths = []

    def fake_get(url, auth=None, params=None):
        auths.append(auth)
        return FakeResponse({'total_count': 0, 'items': []})

    monkeypatch.setattr(sources_core.requests, 'get', fake_get)
    list(GithubSearchSource(auth_username='octocat', auth_token='secret').repo_generator())
    list(GithubSearchSource(auth_username='octocat').repo_generator())
    assert auths == [('octocat', 'secret'), None]
