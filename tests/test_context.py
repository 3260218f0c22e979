import threading

import pytest

from lifi_gateway.core.context import RequestContext, api_key_from_headers
from lifi_gateway.core.errors import RequestCancelled


class TestApiKeyFromHeaders:
    def test_bearer_wins_over_custom_header(self):
        headers = {"Authorization": "Bearer bearer-key", "x-lifi-api-key": "header-key"}
        assert api_key_from_headers(headers) == "bearer-key"

    def test_custom_header_is_case_insensitive(self):
        assert api_key_from_headers({"X-LIFI-API-KEY": " header-key "}) == "header-key"

    def test_non_bearer_authorization_falls_through(self):
        headers = {"authorization": "Basic abc", "x-lifi-api-key": "header-key"}
        assert api_key_from_headers(headers) == "header-key"

    def test_empty_bearer_falls_through(self):
        headers = {"authorization": "Bearer   ", "x-lifi-api-key": "header-key"}
        assert api_key_from_headers(headers) == "header-key"

    @pytest.mark.parametrize("headers", [None, {}, {"content-type": "application/json"}])
    def test_missing_key_is_anonymous(self, headers):
        assert api_key_from_headers(headers) == ""


class TestRequestContext:
    def test_repr_hides_key(self):
        context = RequestContext("super-secret")
        assert "super-secret" not in repr(context)
        assert context.api_key == "super-secret"

    def test_contexts_are_independent(self):
        first, second = RequestContext("a"), RequestContext("b")
        first.cancel()
        assert first.cancelled
        assert not second.cancelled
        assert second.api_key == "b"

    def test_check_raises_after_cancel(self):
        context = RequestContext()
        context.check()
        context.cancel()
        with pytest.raises(RequestCancelled):
            context.check()

    def test_sleep_wakes_on_cancel(self):
        context = RequestContext()
        timer = threading.Timer(0.05, context.cancel)
        timer.start()
        try:
            with pytest.raises(RequestCancelled):
                context.sleep(10)
        finally:
            timer.cancel()

    def test_sleep_returns_when_not_cancelled(self):
        context = RequestContext()
        context.sleep(0.01)
        context.sleep(0)
