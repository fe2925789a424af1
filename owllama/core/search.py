"""
Wikipedia summary lookup used by the /search chat command.
"""

import logging
from urllib.parse import quote

import httpx

from owllama.core.errors import SearchError

logger = logging.getLogger(__name__)

WIKIPEDIA_SUMMARY_URL = "https://en.wikipedia.org/api/rest_v1/page/summary/"
NO_RESULT = "No relevant information found."


def _page_title(query: str) -> str:
    title = query.replace("\r", "").replace("\n", "").strip().replace(" ", "_")
    return quote(title, safe="")


def search_wikipedia(
    query: str,
    client: httpx.Client | None = None,
    timeout: float = 15.0,
) -> str:
    """
    Look up the Wikipedia summary of the page named by ``query``.

    Returns:
        "Title: extract", or a fixed message if there is no such page

    Raises:
        SearchError: On network failures or unexpected responses
    """
    url = WIKIPEDIA_SUMMARY_URL + _page_title(query)
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout, follow_redirects=True)

    try:
        response = http.get(url)
        if response.status_code == 404:
            return NO_RESULT
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as e:
        logger.debug(f"Wikipedia lookup failed for {query!r}: {e}")
        raise SearchError(f"Search failed: {e}") from e
    except ValueError as e:
        raise SearchError(f"Invalid search response: {e}") from e
    finally:
        if owns_client:
            http.close()

    extract = data.get("extract") or ""
    if extract:
        return f"{data.get('title', '')}: {extract}"
    return NO_RESULT
