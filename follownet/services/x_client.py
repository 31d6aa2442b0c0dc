"""
X/Twitter API v1.1 Client

Implements the three endpoints the network workflow relies on:
- users/search for keyword account retrieval
- followers/ids for follower link collection
- application/rate_limit_status for window bookkeeping

Uses Bearer token authentication and handles rate limiting.
"""

import logging
import time
from datetime import datetime
from typing import List, Optional, Dict, Any
import httpx
from follownet.config import get_settings
from follownet.services.rate_limit import RateLimiter, wait_for_reset
from follownet.services.types import Account, FollowerIds, RateLimitStatus

logger = logging.getLogger(__name__)

USERS_SEARCH_PATH = "/users/search.json"
FOLLOWERS_IDS_PATH = "/followers/ids.json"
RATE_LIMIT_STATUS_PATH = "/application/rate_limit_status.json"

# Format of created_at in v1.1 user objects, e.g. "Wed Oct 10 20:19:24 +0000 2018"
CREATED_AT_FORMAT = "%a %b %d %H:%M:%S %z %Y"


class XClient:
    """
    Thin client over the X API.

    Failed requests are logged and reported as None (or an empty list),
    never raised, so callers can decide per account whether to go on.
    """

    def __init__(
        self,
        bearer_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        rate_limit: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client. Unset arguments fall back to settings.

        Args:
            bearer_token: API bearer token
            base_url: API root, e.g. "https://api.twitter.com/1.1"
            timeout: HTTP request timeout in seconds
            max_retries: Maximum attempts per request
            rate_limit: Maximum requests per second
            transport: Optional httpx transport (used by tests)
        """
        settings = get_settings()
        self.bearer_token = bearer_token if bearer_token is not None else settings.x_bearer_token
        self.base_url = (base_url or settings.x_api_base).rstrip("/")
        self.timeout = timeout or settings.request_timeout
        self.max_retries = max_retries or settings.max_retries
        self.rate_limiter = RateLimiter(rate_limit or settings.request_rate_limit)
        self.rate_limit_margin = settings.rate_limit_margin
        self.max_rate_limit_wait = settings.max_rate_limit_wait
        self.transport = transport
        self.rate_limits: Dict[str, RateLimitStatus] = {}

    def is_configured(self) -> bool:
        return bool(self.bearer_token)

    def search_users(self, query: str, max_results: Optional[int] = None) -> List[Account]:
        """
        Search accounts matching a query, following result pages.

        Args:
            query: Search terms (exact phrase matching is not supported by the API)
            max_results: Maximum number of accounts to return

        Returns:
            List of Account objects, in API order
        """
        settings = get_settings()
        max_results = max_results or settings.search_max_results
        page_size = settings.search_page_size

        if not self.is_configured():
            logger.warning("X_BEARER_TOKEN not configured, skipping users search")
            return []

        accounts: List[Account] = []
        seen = set()
        page = 1

        while len(accounts) < max_results:
            result = self._get(
                USERS_SEARCH_PATH,
                {"q": query, "page": page, "count": page_size, "include_entities": "false"},
            )
            if not result:
                break

            new_on_page = 0
            for item in result:
                try:
                    account = _parse_user(item)
                except Exception as e:
                    logger.warning(f"Failed to parse user {item.get('id_str')}: {e}")
                    continue
                if account is None or account.user_id in seen:
                    continue
                seen.add(account.user_id)
                accounts.append(account)
                new_on_page += 1

            # The last pages of users/search repeat earlier results
            if len(result) < page_size or new_on_page == 0:
                break
            page += 1

        accounts = accounts[:max_results]
        logger.info(f"Retrieved {len(accounts)} accounts for query '{query}'")
        return accounts

    def get_follower_ids(self, user_id: str, max_ids: Optional[int] = None) -> Optional[FollowerIds]:
        """
        Fetch the ids of an account's followers.

        Args:
            user_id: Account id
            max_ids: Stop after this many ids (the result is flagged as truncated)

        Returns:
            FollowerIds, or None if any page could not be fetched
        """
        settings = get_settings()
        max_ids = max_ids or settings.max_followers_per_account

        ids: List[str] = []
        cursor = "-1"
        truncated = False

        while True:
            result = self._get(
                FOLLOWERS_IDS_PATH,
                {
                    "user_id": user_id,
                    "cursor": cursor,
                    "count": settings.followers_page_size,
                    "stringify_ids": "true",
                },
            )
            if result is None:
                return None

            # Null entries appear in some responses
            ids.extend(str(i) for i in result.get("ids", []) if i not in (None, ""))

            cursor = str(result.get("next_cursor_str") or result.get("next_cursor") or "0")
            if cursor == "0":
                break
            if len(ids) >= max_ids:
                truncated = True
                break

            # More pages to go: wait here if this window is used up
            wait_for_reset(self.rate_limits.get(FOLLOWERS_IDS_PATH), self.rate_limit_margin, self.max_rate_limit_wait)

        if len(ids) > max_ids:
            ids = ids[:max_ids]
            truncated = True

        if truncated:
            logger.warning(f"Follower ids for {user_id} truncated at {max_ids}")

        return FollowerIds(user_id=user_id, ids=ids, truncated=truncated)

    def get_rate_limit(self, resource: str = "followers", endpoint: str = "/followers/ids") -> Optional[RateLimitStatus]:
        """
        Get the rate-limit window of one endpoint.

        Args:
            resource: Resource family, e.g. "followers" or "users"
            endpoint: Endpoint key inside the family, e.g. "/followers/ids"

        Returns:
            RateLimitStatus or None on error
        """
        result = self._get(RATE_LIMIT_STATUS_PATH, {"resources": resource})
        if not result:
            return None

        entry = result.get("resources", {}).get(resource, {}).get(endpoint)
        if not entry:
            logger.warning(f"No rate limit entry for {endpoint}")
            return None

        try:
            return RateLimitStatus(
                limit=int(entry["limit"]),
                remaining=int(entry["remaining"]),
                reset=float(entry["reset"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed rate limit entry for {endpoint}: {e}")
            return None

    def _get(self, path: str, params: Dict[str, Any]) -> Optional[Any]:
        """
        GET an API path with retry logic and rate limiting.

        Args:
            path: Path below the API root
            params: Query parameters

        Returns:
            Decoded JSON body or None on failure
        """
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.bearer_token}",
            "User-Agent": "follownet/1.0",
        }
        base_delay = 1.0

        for attempt in range(self.max_retries):
            self.rate_limiter.wait()
            try:
                with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                    response = client.get(url, headers=headers, params=params)

                    self._record_rate_limit(path, response)

                    if response.status_code == 200:
                        return response.json()

                    elif response.status_code == 429:
                        # Rate limited - get reset time from headers
                        reset_time = response.headers.get("x-rate-limit-reset")
                        if reset_time:
                            wait_time = max(0, int(reset_time) - int(time.time())) + self.rate_limit_margin
                            wait_time = min(wait_time, self.max_rate_limit_wait)
                        else:
                            wait_time = base_delay * (2 ** attempt)
                        logger.warning(f"Rate limited on {path}, waiting {wait_time}s")
                        time.sleep(wait_time)
                        continue

                    elif response.status_code == 401:
                        logger.error(f"X API refused {path} ({params.get('user_id', '')}) - check X_BEARER_TOKEN or protected account")
                        return None

                    elif response.status_code == 403:
                        logger.error(f"X API access forbidden for {path} - check API access level")
                        return None

                    elif response.status_code == 404:
                        logger.warning(f"X API returned 404 for {path} {params}")
                        return None

                    else:
                        logger.error(f"X API error {response.status_code}: {response.text}")
                        if attempt < self.max_retries - 1:
                            time.sleep(base_delay * (2 ** attempt))
                        continue

            except httpx.TimeoutException:
                logger.warning(f"X API timeout on {path} (attempt {attempt + 1})")
                if attempt < self.max_retries - 1:
                    time.sleep(base_delay * (2 ** attempt))
                continue

            except Exception as e:
                logger.error(f"X API request to {path} failed: {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(base_delay * (2 ** attempt))
                continue

        logger.error(f"Failed to fetch {path} after {self.max_retries} attempts")
        return None

    def _record_rate_limit(self, path: str, response: httpx.Response) -> None:
        remaining = response.headers.get("x-rate-limit-remaining")
        reset = response.headers.get("x-rate-limit-reset")
        if remaining is None or reset is None:
            return
        try:
            self.rate_limits[path] = RateLimitStatus(
                limit=int(response.headers.get("x-rate-limit-limit", 0)),
                remaining=int(remaining),
                reset=float(reset),
            )
        except ValueError:
            logger.debug(f"Ignoring malformed rate limit headers: {remaining}/{reset}")


def _parse_user(user: Dict[str, Any]) -> Optional[Account]:
    """
    Parse a v1.1 user object into an Account.

    Args:
        user: User data from API

    Returns:
        Account or None if the id or screen name is missing
    """
    user_id = user.get("id_str") or (str(user["id"]) if user.get("id") is not None else None)
    screen_name = user.get("screen_name")

    if not user_id or not screen_name:
        return None

    created_at = None
    created_at_str = user.get("created_at")
    if created_at_str:
        try:
            created_at = datetime.strptime(created_at_str, CREATED_AT_FORMAT)
        except (ValueError, TypeError):
            logger.debug(f"Unparseable created_at for {screen_name}: {created_at_str}")

    return Account(
        user_id=user_id,
        screen_name=screen_name,
        name=user.get("name") or "",
        description=user.get("description") or "",
        followers_count=user.get("followers_count") or 0,
        friends_count=user.get("friends_count") or 0,
        statuses_count=user.get("statuses_count") or 0,
        url=user.get("url"),
        location=user.get("location") or None,
        lang=user.get("lang"),
        created_at=created_at,
    )
