"""Tests for the self-test endpoint."""

from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from leadcert.api import diagnostics as diagnostics_module
from leadcert.api.diagnostics import DiagnosticCheck, DiagnosticsHandler
from leadcert.config import DiagnosticsSettings


def _settings(
    stub_server, connectivity_url: str | None = None
) -> DiagnosticsSettings:
    return DiagnosticsSettings(
        upstream_url=stub_server.query_url,
        connectivity_url=connectivity_url or f'{stub_server.base_url}/get',
        connectivity_timeout_seconds=2,
        upstream_timeout_seconds=2,
    )


class TestDiagnosticCheck:
    """Tests for DiagnosticCheck labels."""

    def test_labels(self) -> None:
        assert DiagnosticCheck('a', True).label() == 'PASS'
        assert DiagnosticCheck('a', True, 'Record count: 3').label() == (
            'PASS - Record count: 3'
        )
        assert DiagnosticCheck('a', False, 'refused').label() == 'FAIL - refused'


class TestDiagnosticsHandler:
    """Tests for DiagnosticsHandler."""

    def test_all_checks_pass(self, stub_server, make_event) -> None:
        stub_server.reply(body={'count': 48213}, path='/query')
        stub_server.reply(body={'url': 'ok'}, path='/get')
        handler = DiagnosticsHandler(_settings(stub_server))

        response = handler(
            make_event('GET', path='/test', headers={'User-Agent': 'pytest'}), None
        )

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['success'] is True
        assert body['message'] == 'API is working!'
        assert body['tests'] == {
            'basicFunction': 'PASS',
            'networkConnectivity': 'PASS',
            'arcgisConnectivity': 'PASS - Record count: 48213',
        }
        assert body['request']['method'] == 'GET'
        assert body['request']['userAgent'] == 'pytest'
        assert 'pythonVersion' in body['environment']
        assert response['headers']['Access-Control-Allow-Origin'] == '*'

    def test_reports_latency_for_timed_checks(self, stub_server, make_event) -> None:
        stub_server.reply(body={'count': 1})
        handler = DiagnosticsHandler(_settings(stub_server))

        body = json.loads(handler(make_event('GET', path='/test'), None)['body'])

        assert set(body['latencyMs']) == {'networkConnectivity', 'arcgisConnectivity'}
        assert all(value >= 0 for value in body['latencyMs'].values())

    def test_count_unknown(self, stub_server, make_event) -> None:
        stub_server.reply(body={})
        handler = DiagnosticsHandler(_settings(stub_server))

        body = json.loads(handler(make_event('GET', path='/test'), None)['body'])

        assert body['tests']['arcgisConnectivity'] == 'PASS - Record count: unknown'

    def test_failures_are_reported_not_raised(
        self, stub_server, unreachable_url, make_event
    ) -> None:
        stub_server.reply(body={'error': {'message': 'Token required'}}, path='/query')
        handler = DiagnosticsHandler(
            _settings(stub_server, connectivity_url=unreachable_url)
        )

        response = handler(make_event('GET', path='/test'), None)

        assert response['statusCode'] == 200
        tests = json.loads(response['body'])['tests']
        assert tests['basicFunction'] == 'PASS'
        assert tests['networkConnectivity'].startswith('FAIL - ')
        assert tests['arcgisConnectivity'] == 'FAIL - ArcGIS API Error: Token required'

    def test_options(self, stub_server, make_event) -> None:
        handler = DiagnosticsHandler(_settings(stub_server))
        response = handler(make_event('OPTIONS', path='/test'), None)
        assert response['statusCode'] == 200
        assert response['body'] == ''
        assert stub_server.requests == []

    def test_lambda_handler(self, stub_server, make_event, monkeypatch) -> None:
        monkeypatch.setenv('ARCGIS_QUERY_URL', stub_server.query_url)
        monkeypatch.setenv('CONNECTIVITY_CHECK_URL', f'{stub_server.base_url}/get')
        diagnostics_module.reset_default_handler()
        try:
            response = diagnostics_module.lambda_handler(
                make_event('GET', path='/test'), None
            )
        finally:
            diagnostics_module.reset_default_handler()
        assert response['statusCode'] == 200
        assert json.loads(response['body'])['tests']['basicFunction'] == 'PASS'
