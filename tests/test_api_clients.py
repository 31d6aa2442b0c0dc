"""Tests for the X API client (with mocked transport)."""
import time
import pytest
from unittest.mock import patch
import httpx

from follownet.services.x_client import XClient, _parse_user
from follownet.services.types import RateLimitStatus


def make_user(i, **overrides):
    user = {
        "id": 1000 + i,
        "id_str": str(1000 + i),
        "screen_name": f"user{i}",
        "name": f"User {i}",
        "description": "citizen science enthusiast",
        "followers_count": 10,
        "friends_count": 5,
        "statuses_count": 100,
        "url": None,
        "location": "Geneva",
        "lang": "en",
        "created_at": "Wed Oct 10 20:19:24 +0000 2018",
    }
    user.update(overrides)
    return user


def make_client(handler, **kwargs):
    return XClient(
        bearer_token=kwargs.pop("bearer_token", "test_token"),
        base_url="https://api.test/1.1",
        rate_limit=1000.0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestParseUser:
    """Tests for user object parsing."""

    def test_parse_user_basic(self):
        """Test X users API payload maps onto an Account."""
        account = _parse_user(make_user(1))

        assert account is not None
        assert account.user_id == "1001"
        assert account.screen_name == "user1"
        assert account.followers_count == 10
        assert account.created_at.year == 2018
        assert account.created_at.month == 10

    def test_parse_user_large_id_stays_exact(self):
        """Test id_str is preferred so large ids stay exact."""
        account = _parse_user(make_user(1, id=815960457437896705, id_str="815960457437896705"))
        assert account.user_id == "815960457437896705"

    def test_parse_user_missing_id(self):
        """Test a user without an id is dropped."""
        assert _parse_user({"screen_name": "nobody"}) is None

    def test_parse_user_bad_date(self):
        """Test an unparseable created_at becomes None."""
        account = _parse_user(make_user(1, created_at="yesterday"))
        assert account is not None
        assert account.created_at is None

    def test_parse_user_null_fields(self):
        """Test null or blank fields fall back to defaults."""
        account = _parse_user(make_user(1, description=None, location="", followers_count=None))
        assert account.description == ""
        assert account.location is None
        assert account.followers_count == 0


@patch("follownet.services.x_client.time.sleep")
class TestSearchUsers:
    """Tests for users/search paging."""

    def test_no_token(self, mock_sleep):
        """Test X API client returns empty when no token configured."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=[])

        client = make_client(handler, bearer_token="")
        assert client.search_users("citsci") == []
        assert calls == []

    def test_follows_pages(self, mock_sleep):
        """Test user search requests successive pages."""
        def handler(request):
            page = int(request.url.params["page"])
            if page == 1:
                return httpx.Response(200, json=[make_user(i) for i in range(20)])
            return httpx.Response(200, json=[make_user(i) for i in range(20, 23)])

        accounts = make_client(handler).search_users("citsci")

        assert len(accounts) == 23
        assert accounts[0].user_id == "1000"
        assert accounts[-1].user_id == "1022"

    def test_stops_on_repeated_page(self, mock_sleep):
        """Test user search stops when a page repeats the previous one."""
        pages = []

        def handler(request):
            pages.append(int(request.url.params["page"]))
            return httpx.Response(200, json=[make_user(i) for i in range(20)])

        accounts = make_client(handler).search_users("citsci")

        assert len(accounts) == 20
        assert pages == [1, 2]

    def test_max_results(self, mock_sleep):
        """Test user search stops at max_results."""
        def handler(request):
            return httpx.Response(200, json=[make_user(i) for i in range(20)])

        accounts = make_client(handler).search_users("citsci", max_results=5)
        assert len(accounts) == 5

    def test_sends_bearer_token(self, mock_sleep):
        """Test requests carry the bearer token header."""
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["q"] = request.url.params["q"]
            return httpx.Response(200, json=[])

        make_client(handler).search_users("citizen science")

        assert seen["auth"] == "Bearer test_token"
        assert seen["q"] == "citizen science"


@patch("follownet.services.x_client.time.sleep")
class TestFollowerIds:
    """Tests for followers/ids cursoring and error handling."""

    def test_cursor_pagination(self, mock_sleep):
        """Test follower ids follow next_cursor until it is 0."""
        cursors = []

        def handler(request):
            cursor = request.url.params["cursor"]
            cursors.append(cursor)
            if cursor == "-1":
                return httpx.Response(200, json={"ids": ["1", "2"], "next_cursor_str": "123"})
            return httpx.Response(200, json={"ids": ["3", None], "next_cursor_str": "0"})

        result = make_client(handler).get_follower_ids("42")

        assert result.user_id == "42"
        assert result.ids == ["1", "2", "3"]
        assert result.truncated is False
        assert cursors == ["-1", "123"]

    def test_truncates_at_cap(self, mock_sleep):
        """Test follower ids stop at the per-account cap and flag truncation."""
        def handler(request):
            return httpx.Response(200, json={"ids": ["1", "2", "3"], "next_cursor_str": "99"})

        result = make_client(handler).get_follower_ids("42", max_ids=2)

        assert result.ids == ["1", "2"]
        assert result.truncated is True

    def test_protected_account(self, mock_sleep):
        """Test a protected account gives None without retrying."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"error": "Not authorized."})

        assert make_client(handler).get_follower_ids("42") is None
        assert len(calls) == 1

    def test_rate_limited_then_ok(self, mock_sleep):
        """Test a 429 waits for the window reset and retries."""
        responses = [
            httpx.Response(429, headers={"x-rate-limit-reset": str(int(time.time()) + 5)}),
            httpx.Response(200, json={"ids": ["7"], "next_cursor_str": "0"}),
        ]

        def handler(request):
            return responses.pop(0)

        result = make_client(handler).get_follower_ids("42")

        assert result.ids == ["7"]
        waits = [c.args[0] for c in mock_sleep.call_args_list]
        assert any(w >= 1 for w in waits)

    def test_server_error_gives_up(self, mock_sleep):
        """Test repeated 5xx responses give up after max_retries."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="over capacity")

        assert make_client(handler, max_retries=2).get_follower_ids("42") is None
        assert len(calls) == 2

    def test_timeout_retries(self, mock_sleep):
        """Test a timeout is retried."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"ids": ["5"], "next_cursor_str": "0"})

        result = make_client(handler).get_follower_ids("42")
        assert result.ids == ["5"]
        assert len(calls) == 2


@patch("follownet.services.x_client.time.sleep")
class TestRateLimitStatus:
    """Tests for rate-limit bookkeeping."""

    def test_get_rate_limit(self, mock_sleep):
        """Test the followers/ids window is read from rate_limit_status."""
        def handler(request):
            assert request.url.params["resources"] == "followers"
            return httpx.Response(200, json={
                "resources": {"followers": {"/followers/ids": {"limit": 15, "remaining": 3, "reset": 1700000000}}}
            })

        status = make_client(handler).get_rate_limit()

        assert status == RateLimitStatus(limit=15, remaining=3, reset=1700000000.0)

    def test_get_rate_limit_missing_entry(self, mock_sleep):
        """Test a missing window entry gives None."""
        def handler(request):
            return httpx.Response(200, json={"resources": {}})

        assert make_client(handler).get_rate_limit() is None

    def test_headers_are_recorded(self, mock_sleep):
        """Test x-rate-limit headers are recorded per path."""
        def handler(request):
            return httpx.Response(
                200,
                json={"ids": [], "next_cursor_str": "0"},
                headers={"x-rate-limit-limit": "15", "x-rate-limit-remaining": "0", "x-rate-limit-reset": "1700000000"},
            )

        client = make_client(handler)
        client.get_follower_ids("42")

        status = client.rate_limits["/followers/ids.json"]
        assert status.remaining == 0
        assert status.limit == 15

    def test_seconds_until_reset(self, mock_sleep):
        """Test seconds until reset never go below zero."""
        status = RateLimitStatus(limit=15, remaining=0, reset=100.0)
        assert status.seconds_until_reset(40.0) == 60.0
        assert status.seconds_until_reset(200.0) == 0.0
