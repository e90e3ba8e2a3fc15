#!/usr/bin/env python3
"""
Page Discovery Tests

Tests for manifest fetching, URL batch fetching and the URL resolution loop,
using the responses library to mock the provider's JSON endpoint.
"""

import pytest
import requests
import responses
from responses import matchers
from unittest.mock import Mock

from discovery import ManifestResolver, UrlResolver, resolve_urls
from exceptions import DiscoveryError
from models import UrlMapping
from sequencer import TaskSequencer

BASE_URL = 'https://books.example.com'
ENDPOINT = f'{BASE_URL}/books'
DOCUMENT_ID = 'abc123'


def add_page_response(page, status=200, json_body=None, body=None):
    """Register a mocked provider response for one 'pg' value"""
    params = {'id': DOCUMENT_ID, 'jscmd': 'click3', 'pg': page}
    kwargs = {'status': status, 'match': [matchers.query_param_matcher(params)]}
    if body is not None:
        kwargs['body'] = body
    else:
        kwargs['json'] = json_body if json_body is not None else {}
    responses.add(responses.GET, ENDPOINT, **kwargs)


def batch_calls():
    return [call.request.url for call in responses.calls]


class TestManifestResolver:
    """Test fetching the page manifest"""

    def setup_method(self):
        self.resolver = ManifestResolver(requests.Session(), BASE_URL, DOCUMENT_ID)

    @responses.activate
    def test_fetch_manifest_returns_ids_in_order(self):
        add_page_response('PP1', json_body={'page': [
            {'pid': 'PP1'}, {'pid': 'PA1', 'src': 'ignored'}, {'pid': 'PA2'}
        ]})

        assert self.resolver.fetch_manifest() == ['PP1', 'PA1', 'PA2']
        assert len(responses.calls) == 1

    @responses.activate
    def test_fetch_manifest_keeps_duplicates(self):
        add_page_response('PP1', json_body={'page': [{'pid': 'p1'}, {'pid': 'p2'}, {'pid': 'p1'}]})

        assert self.resolver.fetch_manifest() == ['p1', 'p2', 'p1']

    @responses.activate
    def test_descriptors_without_pid_keep_their_position(self):
        add_page_response('PP1', json_body={'page': [{'pid': 'p1'}, {'order': 2}, 'junk', {'pid': 'p4'}]})

        assert self.resolver.fetch_manifest() == ['p1', None, None, 'p4']

    @responses.activate
    def test_manifest_without_any_pid_raises(self):
        add_page_response('PP1', json_body={'page': [{'order': 1}, {'order': 2}]})

        with pytest.raises(DiscoveryError) as exc_info:
            self.resolver.fetch_manifest()

        assert exc_info.value.stage == 'manifest'

    @responses.activate
    def test_http_error_raises_discovery_error(self):
        add_page_response('PP1', status=500)

        with pytest.raises(DiscoveryError) as exc_info:
            self.resolver.fetch_manifest()

        assert exc_info.value.stage == 'manifest'
        assert '500' in str(exc_info.value)

    @responses.activate
    def test_missing_page_list_raises(self):
        add_page_response('PP1', json_body={'other': []})

        with pytest.raises(DiscoveryError):
            self.resolver.fetch_manifest()

    @responses.activate
    def test_empty_page_list_raises(self):
        add_page_response('PP1', json_body={'page': []})

        with pytest.raises(DiscoveryError):
            self.resolver.fetch_manifest()

    @responses.activate
    def test_invalid_json_raises(self):
        add_page_response('PP1', body='<html>not json</html>')

        with pytest.raises(DiscoveryError):
            self.resolver.fetch_manifest()

    @responses.activate
    def test_connection_error_raises(self):
        responses.add(responses.GET, ENDPOINT, body=requests.exceptions.ConnectionError("Network down"))

        with pytest.raises(DiscoveryError):
            self.resolver.fetch_manifest()


class TestUrlResolver:
    """Test fetching a batch of signed URLs"""

    def setup_method(self):
        self.resolver = UrlResolver(requests.Session(), BASE_URL, DOCUMENT_ID)

    @responses.activate
    def test_fetch_batch_maps_pid_to_src(self):
        add_page_response('p1', json_body={'page': [
            {'pid': 'p1', 'src': 'u1'},
            {'pid': 'p2', 'src': 'u2'},
        ]})

        assert self.resolver.fetch_url_batch('p1') == {'p1': 'u1', 'p2': 'u2'}

    @responses.activate
    def test_entries_missing_fields_are_ignored(self):
        add_page_response('p1', json_body={'page': [
            {'pid': 'p1', 'src': 'u1'},
            {'pid': 'p2'},
            {'src': 'orphan'},
            {'pid': 'p3', 'src': ''},
        ]})

        assert self.resolver.fetch_url_batch('p1') == {'p1': 'u1'}

    @responses.activate
    def test_first_entry_wins_within_batch(self):
        add_page_response('p1', json_body={'page': [
            {'pid': 'p1', 'src': 'first'},
            {'pid': 'p1', 'src': 'second'},
        ]})

        assert self.resolver.fetch_url_batch('p1') == {'p1': 'first'}

    @responses.activate
    def test_empty_page_list_is_a_valid_batch(self):
        add_page_response('p1', json_body={'page': []})

        assert self.resolver.fetch_url_batch('p1') == {}

    @responses.activate
    def test_absent_page_list_raises(self):
        add_page_response('p1', json_body={})

        with pytest.raises(DiscoveryError) as exc_info:
            self.resolver.fetch_url_batch('p1')

        assert exc_info.value.stage == 'batch'

    @responses.activate
    def test_http_error_raises(self):
        add_page_response('p1', status=403)

        with pytest.raises(DiscoveryError):
            self.resolver.fetch_url_batch('p1')


class TestResolveUrls:
    """Test the URL resolution loop"""

    def setup_method(self):
        self.sleeps = []
        self.sequencer = TaskSequencer(50, sleep=self.sleeps.append)

    def test_already_resolved_ids_are_skipped(self):
        resolver = Mock()
        resolver.fetch_url_batch.side_effect = lambda pid: {
            'p1': {'p1': 'u1', 'p2': 'u2'},
            'p3': {'p3': 'u3'},
        }[pid]

        mapping = resolve_urls(['p1', 'p2', 'p3'], resolver, self.sequencer)

        assert [c.args[0] for c in resolver.fetch_url_batch.call_args_list] == ['p1', 'p3']
        assert mapping.get('p1') == 'u1'
        assert mapping.get('p2') == 'u2'
        assert mapping.get('p3') == 'u3'
        # delay follows issued queries only
        assert self.sleeps == [0.05, 0.05]

    def test_large_batches_need_few_queries(self):
        manifest = [f"p{i}" for i in range(100)]
        window = 10

        def batch(pid):
            start = manifest.index(pid)
            return {p: f"u-{p}" for p in manifest[start:start + window]}

        resolver = Mock()
        resolver.fetch_url_batch.side_effect = batch

        mapping = resolve_urls(manifest, resolver, self.sequencer)

        assert len(mapping) == 100
        assert resolver.fetch_url_batch.call_count == 10
        assert self.sequencer.calls == 10

    def test_never_queries_an_id_already_in_mapping(self):
        mapping = UrlMapping()
        mapping.try_insert('p2', 'known')
        resolver = Mock()
        resolver.fetch_url_batch.side_effect = lambda pid: {pid: f"u-{pid}", 'p2': 'newer'}

        resolve_urls(['p1', 'p2', 'p3'], resolver, self.sequencer, mapping)

        queried = [c.args[0] for c in resolver.fetch_url_batch.call_args_list]
        assert queried == ['p1', 'p3']
        assert mapping.get('p2') == 'known'

    def test_later_batches_do_not_overwrite(self):
        resolver = Mock()
        resolver.fetch_url_batch.side_effect = lambda pid: {
            'p1': {'p1': 'u1'},
            'p2': {'p1': 'stale-or-newer', 'p2': 'u2'},
        }[pid]

        mapping = resolve_urls(['p1', 'p2'], resolver, self.sequencer)

        assert mapping.get('p1') == 'u1'

    def test_batch_failure_propagates(self):
        resolver = Mock()
        resolver.fetch_url_batch.side_effect = DiscoveryError('batch', 'HTTP 500')

        with pytest.raises(DiscoveryError):
            resolve_urls(['p1', 'p2'], resolver, self.sequencer)

        assert resolver.fetch_url_batch.call_count == 1
        # the delay still follows the failed query
        assert self.sleeps == [0.05]

    def test_positions_without_id_are_never_queried(self):
        resolver = Mock()
        resolver.fetch_url_batch.side_effect = lambda pid: {pid: f"u-{pid}"}
        reporter = Mock()

        mapping = resolve_urls(['p1', None, 'p3'], resolver, self.sequencer, reporter=reporter)

        assert [c.args[0] for c in resolver.fetch_url_batch.call_args_list] == ['p1', 'p3']
        assert len(mapping) == 2
        reporter.urls_resolved.assert_called_once_with(2, 3, 2)

    def test_unresolvable_ids_are_queried_once_each(self):
        resolver = Mock()
        resolver.fetch_url_batch.return_value = {}

        mapping = resolve_urls(['p1', 'p2'], resolver, self.sequencer)

        assert len(mapping) == 0
        assert resolver.fetch_url_batch.call_count == 2

    def test_reporter_receives_progress(self):
        resolver = Mock()
        resolver.fetch_url_batch.return_value = {'p1': 'u1', 'p2': 'u2'}
        reporter = Mock()

        resolve_urls(['p1', 'p2'], resolver, self.sequencer, reporter=reporter)

        reporter.batch_query.assert_called_once_with(1, 2, 'p1')
        reporter.urls_resolved.assert_called_once_with(2, 2, 1)

    @responses.activate
    def test_resolve_urls_over_http(self):
        add_page_response('p1', json_body={'page': [{'pid': 'p1', 'src': 'u1'}, {'pid': 'p2', 'src': 'u2'}]})
        add_page_response('p3', json_body={'page': [{'pid': 'p3', 'src': 'u3'}]})
        resolver = UrlResolver(requests.Session(), BASE_URL, DOCUMENT_ID)

        mapping = resolve_urls(['p1', 'p2', 'p3'], resolver, self.sequencer)

        assert len(responses.calls) == 2
        assert all('pg=p2' not in url for url in batch_calls())
        assert [mapping.get(p) for p in ['p1', 'p2', 'p3']] == ['u1', 'u2', 'u3']
