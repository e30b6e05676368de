"""
Unit tests for response capture and the feed converter.
"""

from unittest.mock import MagicMock

import pytest

from cosmos_persistence.exceptions import InvalidArgumentError
from cosmos_persistence.handlers import F, ItemQuery, QueryToFeedIterator, ResponseCapture
from cosmos_persistence.handlers.response import ItemResponse, parse_request_charge


class TestParseRequestCharge:
    """Test header parsing."""

    def test_reads_header(self):
        assert parse_request_charge({"x-ms-request-charge": "5.71"}) == 5.71

    @pytest.mark.parametrize("headers", [None, {}, {"x-ms-request-charge": "n/a"}])
    def test_missing_or_malformed(self, headers):
        assert parse_request_charge(headers) == 0.0


class TestResponseCapture:
    """Test the response hook."""

    def test_sums_charge_and_keeps_last_headers(self):
        capture = ResponseCapture()
        capture({"x-ms-request-charge": "1.5", "x-ms-activity-id": "a1"}, [])
        capture({"x-ms-request-charge": "2.5", "x-ms-activity-id": "a2"}, [])

        assert capture.calls == 2
        assert capture.request_charge == 4.0
        assert capture.headers["x-ms-activity-id"] == "a2"

    def test_to_response(self):
        capture = ResponseCapture()
        capture(
            {
                "x-ms-request-charge": "6.0",
                "x-ms-activity-id": "a1",
                "x-ms-session-token": "0:1#5",
            },
            {"id": "o1"},
        )

        response = capture.to_response({"id": "o1"})

        assert response == ItemResponse(
            resource={"id": "o1"}, request_charge=6.0, activity_id="a1", session_token="0:1#5"
        )
        assert response.to_dict() == {
            "status_code": 200,
            "success": True,
            "request_charge": 6.0,
            "activity_id": "a1",
            "session_token": "0:1#5",
        }

    def test_without_calls(self):
        response = ResponseCapture().to_response(None)
        assert response.request_charge == 0.0
        assert response.activity_id is None

    def test_status_code_passed_through(self):
        response = ResponseCapture().to_response({"id": "o1"}, status_code=201)
        assert response.status_code == 201
        assert response.success


class TestItemResponse:
    """Test the response envelope."""

    @pytest.mark.parametrize("status_code", [200, 201, 204, 299])
    def test_success_for_2xx(self, status_code):
        assert ItemResponse(resource=None, status_code=status_code).success

    @pytest.mark.parametrize("status_code", [199, 300, 304, 404, 409, 429, 500])
    def test_not_success_outside_2xx(self, status_code):
        response = ItemResponse(resource=None, status_code=status_code)
        assert not response.success
        assert response.to_dict()["success"] is False

    def test_defaults_to_ok(self):
        response = ItemResponse(resource={"id": "o1"})
        assert response.status_code == 200
        assert response.success


class TestQueryToFeedIterator:
    """Test conversion of built queries into query_items calls."""

    def test_passes_rendered_query_and_hook(self):
        container = MagicMock()
        hook = ResponseCapture()

        feed = QueryToFeedIterator().get_feed_iterator(
            container, ItemQuery(predicate=F.total > 5), response_hook=hook
        )

        assert feed is container.query_items.return_value
        container.query_items.assert_called_once_with(
            query="SELECT * FROM c WHERE c.total > @p0",
            parameters=[{"name": "@p0", "value": 5}],
            response_hook=hook,
        )

    def test_without_hook(self):
        container = MagicMock()

        QueryToFeedIterator().get_feed_iterator(container, ItemQuery().count())

        container.query_items.assert_called_once_with(
            query="SELECT VALUE COUNT(1) FROM c", parameters=[]
        )

    def test_requires_query(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            QueryToFeedIterator().get_feed_iterator(MagicMock(), None)
        assert exc_info.value.parameter == "item_query"
