"""Tests for the lookup page template and handler."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from leadcert.api import lookup_page as page_module
from leadcert.api.lookup_page import LookupPageHandler
from leadcert.api.schemas import CertificationRecord
from leadcert.exceptions import UpstreamTransportError
from leadcert.services.lookup_client import (
    GENERIC_FAILURE_MESSAGE,
    NOT_FOUND_MESSAGE,
    LookupClient,
    LookupState,
)
from leadcert.templates import format_date, render_lookup_page
from leadcert.utils.validators import INVALID_ACCOUNT_MESSAGE


class FakeTransport:
    def __init__(self, features: Any = None, error: Exception | None = None) -> None:
        self.features = features or []
        self.error = error
        self.queries: list[str] = []

    def fetch(self, query: str) -> list[Any]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.features


class TestFormatDate:
    """Tests for format_date."""

    def test_epoch_milliseconds(self) -> None:
        assert format_date(1704067200000) == '01/01/2024'
        assert format_date(1798761600000) == '01/01/2027'

    @pytest.mark.parametrize('value', [None, ''])
    def test_empty(self, value) -> None:
        assert format_date(value) == 'N/A'

    def test_text_passes_through(self) -> None:
        assert format_date('2024-01-01') == '2024-01-01'

    @pytest.mark.parametrize('value', [10**20, -(10**20), float('nan')])
    def test_out_of_range_timestamp_is_shown_raw(self, value) -> None:
        assert format_date(value) == str(value)


class TestRenderLookupPage:
    """Tests for render_lookup_page."""

    def test_empty_form(self) -> None:
        html = render_lookup_page(LookupState())
        assert 'name="opa"' in html
        assert 'action="/lookup"' in html
        assert 'Certification Status' not in html
        assert 'Data Source:' in html

    def test_error_banner(self) -> None:
        html = render_lookup_page(
            LookupState(account_input='123', error=INVALID_ACCOUNT_MESSAGE)
        )
        assert INVALID_ACCOUNT_MESSAGE in html
        assert 'value="123"' in html

    def test_not_found_banner(self) -> None:
        html = render_lookup_page(
            LookupState(
                account_input='081128700', not_found=True, notice=NOT_FOUND_MESSAGE
            )
        )
        assert NOT_FOUND_MESSAGE in html
        assert 'Certification Status' not in html

    def test_result_card(self, sample_attributes) -> None:
        record = CertificationRecord.model_validate(sample_attributes)
        html = render_lookup_page(
            LookupState(account_input='081128700', result=record)
        )
        assert 'Certification Status' in html
        assert 'Search Again' in html
        assert '1234 S BROAD ST' in html
        assert '01/01/2024' in html
        assert '01/01/2027' in html
        assert 'Status Details:' in html
        assert 'Dust wipe test passed' in html
        assert 'Does not need lead certification' not in html
        assert '#15803d' in html

    def test_exempt_notice(self) -> None:
        record = CertificationRecord(
            opa_account='081128700', lhhp_certification_status='Exempt'
        )
        html = render_lookup_page(LookupState(result=record))
        assert 'Does not need lead certification' in html
        assert 'Not available' in html
        assert 'N/A' in html
        assert 'Status Details:' not in html

    def test_numeric_text_fields(self) -> None:
        record = CertificationRecord.model_validate(
            {
                'opa_account': 81128700,
                'address': 1234,
                'lhhp_certification_status': 1,
                'lhhp_status_type': 2,
                'lhhp_status_details': 42,
            }
        )
        html = render_lookup_page(LookupState(result=record))
        assert '<td style="padding: 6px 0;">1234</td>' in html
        assert 'Status Details:' in html
        assert '>42<' in html

    def test_escapes_user_and_upstream_text(self) -> None:
        record = CertificationRecord(
            opa_account='081128700',
            address='<script>alert(1)</script>',
            lhhp_certification_status='Certified',
        )
        html = render_lookup_page(
            LookupState(account_input='"><b>x</b>', result=record)
        )
        assert '<script>' not in html
        assert '&lt;script&gt;' in html
        assert '"><b>' not in html


class TestLookupPageHandler:
    """Tests for LookupPageHandler."""

    def test_form_without_input_makes_no_request(self, make_event) -> None:
        transport = FakeTransport()
        handler = LookupPageHandler(LookupClient(transport))

        response = handler(make_event('GET', path='/lookup'), None)

        assert response['statusCode'] == 200
        assert response['headers']['Content-Type'].startswith('text/html')
        assert transport.queries == []

    def test_renders_result(self, make_event, sample_features) -> None:
        transport = FakeTransport(features=sample_features)
        handler = LookupPageHandler(LookupClient(transport))

        response = handler(make_event('GET', path='/lookup', opa='081128700'), None)

        assert response['statusCode'] == 200
        assert '1234 S BROAD ST' in response['body']
        assert len(transport.queries) == 1

    def test_invalid_input(self, make_event) -> None:
        transport = FakeTransport()
        handler = LookupPageHandler(LookupClient(transport))

        response = handler(make_event('GET', path='/lookup', opa='12'), None)

        assert INVALID_ACCOUNT_MESSAGE in response['body']
        assert transport.queries == []

    def test_not_found(self, make_event) -> None:
        handler = LookupPageHandler(LookupClient(FakeTransport()))
        response = handler(make_event('GET', path='/lookup', opa='081128700'), None)
        assert NOT_FOUND_MESSAGE in response['body']

    def test_transport_error(self, make_event) -> None:
        transport = FakeTransport(error=UpstreamTransportError(GENERIC_FAILURE_MESSAGE))
        handler = LookupPageHandler(LookupClient(transport))

        response = handler(make_event('GET', path='/lookup', opa='081128700'), None)

        assert response['statusCode'] == 200
        assert GENERIC_FAILURE_MESSAGE in response['body']

    def test_bad_date_still_renders(self, make_event, sample_attributes) -> None:
        attributes = dict(sample_attributes, lhhp_cert_date=10**20)
        transport = FakeTransport(features=[{'attributes': attributes}])
        handler = LookupPageHandler(LookupClient(transport))

        response = handler(make_event('GET', path='/lookup', opa='081128700'), None)

        assert response['statusCode'] == 200
        assert str(10**20) in response['body']

    def test_unexpected_error_is_500(self, make_event, mocker, sample_features) -> None:
        mocker.patch.object(
            page_module, 'render_lookup_page', side_effect=RuntimeError('boom')
        )
        handler = LookupPageHandler(LookupClient(FakeTransport(features=sample_features)))

        response = handler(make_event('GET', path='/lookup', opa='081128700'), None)

        assert response['statusCode'] == 500
        assert response['headers']['Access-Control-Allow-Origin'] == '*'
        assert 'Internal server error' in response['body']

    def test_options(self, make_event) -> None:
        handler = LookupPageHandler(LookupClient(FakeTransport()))
        response = handler(make_event('OPTIONS', path='/lookup'), None)
        assert response['statusCode'] == 200
        assert response['body'] == ''
        assert response['headers']['Access-Control-Allow-Origin'] == '*'

    def test_post_is_rejected(self, make_event) -> None:
        handler = LookupPageHandler(LookupClient(FakeTransport()))
        response = handler(make_event('POST', path='/lookup'), None)
        assert response['statusCode'] == 405

    def test_lambda_handler_uses_environment(
        self, stub_server, make_event, monkeypatch, sample_features
    ) -> None:
        stub_server.reply(body={'features': sample_features})
        monkeypatch.setenv('ARCGIS_QUERY_URL', stub_server.query_url)
        monkeypatch.delenv('LOOKUP_PROXY_URL', raising=False)
        monkeypatch.setenv('LOOKUP_TIMEOUT_SECONDS', '5')
        page_module.reset_default_handler()
        try:
            response = page_module.lambda_handler(
                make_event('GET', path='/lookup', opa='081128700'), None
            )
        finally:
            page_module.reset_default_handler()

        assert response['statusCode'] == 200
        assert '1234 S BROAD ST' in response['body']
