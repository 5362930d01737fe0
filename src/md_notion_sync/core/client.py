"""Notion page gateway.

Wraps the official ``notion-client`` SDK behind the small contract the
sync engine depends on (``find_by_id`` / ``create`` / ``update``).

- Requests are held under Notion's 3 requests/second limit (one
  limiter per process, shared by every gateway and worker thread).
- ``rate_limited`` and 5xx responses are retried by the SDK itself
  (``RetryOptions``) with exponential backoff.
- Block payloads are appended in batches of ``MAX_BLOCKS_PER_REQUEST``.
- Pages synced with edit access ``none`` are locked in the Notion UI.
"""

import logging
from typing import Any

from notion_client import Client, RetryOptions
from notion_client.errors import HTTPResponseError
from ratelimit import limits, sleep_and_retry

from ..errors import InvalidConfigurationError, PageNotFoundError
from ..sync.blocks import GITHUB_LINK_LABEL, NOTION_TEXT_LIMIT, github_link_callout
from ..sync.links import notion_page_url
from ..sync.models import PageMetadata, RemotePage

logger = logging.getLogger(__name__)

# Notion API rate limit: 3 requests per second
RATE_LIMIT_CALLS = 3
RATE_LIMIT_PERIOD = 1  # second

MAX_BLOCKS_PER_REQUEST = 100
PAGE_SIZE = 100


def _is_not_found(exc: HTTPResponseError) -> bool:
    return str(getattr(exc.code, "value", exc.code)) == "object_not_found" or (
        exc.status == 404
    )


def _plain_text(rich_text: list[dict[str, Any]]) -> str:
    return "".join(
        rt.get("plain_text") or rt.get("text", {}).get("content", "")
        for rt in rich_text
    )


def _batches(items: list, size: int):
    for start in range(0, len(items), size):
        yield items[start : start + size]


class NotionPageGateway:
    """Page gateway backed by the Notion API.

    New pages are created under ``database_id`` when set, else under
    ``parent_page_id``.

    Args:
        token: Integration token (ignored when *client* is given).
        parent_page_id: Parent page for new pages.
        database_id: Parent database for new pages.
        title_property: Name of the database title property.
        client: Preconfigured ``notion_client.Client`` (tests).
        max_retries: SDK retries for rate-limited and 5xx responses.
    """

    def __init__(
        self,
        token: str | None = None,
        parent_page_id: str | None = None,
        database_id: str | None = None,
        title_property: str = "Name",
        client: Client | None = None,
        max_retries: int = 3,
    ):
        if client is None:
            if not token:
                raise InvalidConfigurationError("Notion token is required")
            client = Client(
                auth=token,
                logger=logging.getLogger("notion_client"),
                log_level=logging.WARNING,
                retry=RetryOptions(max_retries=max_retries),
            )
        self.client = client
        self.parent_page_id = parent_page_id
        self.database_id = database_id
        self.title_property = title_property
        self.request_count = 0

    @sleep_and_retry
    @limits(calls=RATE_LIMIT_CALLS, period=RATE_LIMIT_PERIOD)
    def _call(self, func, **kwargs) -> Any:
        """Execute a rate-limited API call."""
        self.request_count += 1
        return func(**kwargs)

    # ------------------------------------------------------------------
    # Gateway contract
    # ------------------------------------------------------------------

    def find_by_id(self, page_id: str) -> RemotePage | None:
        """Fetch a page, or ``None`` if it is missing, archived or trashed."""
        try:
            response = self._call(self.client.pages.retrieve, page_id=page_id)
        except HTTPResponseError as e:
            if _is_not_found(e):
                logger.info("Page %s not found", page_id)
                return None
            raise
        if response.get("archived") or response.get("in_trash"):
            logger.info("Page %s is archived", page_id)
            return None

        github_url = self._find_github_url(page_id)
        blocks = (github_link_callout(github_url),) if github_url else ()
        return RemotePage(
            id=response["id"],
            title=self._extract_title(response),
            blocks=blocks,
            metadata=PageMetadata(
                github_url=github_url,
                notion_url=response.get("url") or notion_page_url(response["id"]),
            ),
        )

    def create(self, page: RemotePage) -> RemotePage:
        """Create *page*; returns it with the assigned id and URL."""
        if self.database_id:
            parent = {"database_id": self.database_id}
        elif self.parent_page_id:
            parent = {"page_id": self.parent_page_id}
        else:
            raise InvalidConfigurationError(
                "A parent page id or database id is required to create pages"
            )

        payload = [block.to_notion() for block in page.blocks]
        response = self._call(
            self.client.pages.create,
            parent=parent,
            properties=self._title_property(page.title),
            children=payload[:MAX_BLOCKS_PER_REQUEST],
        )
        page_id = response["id"]
        self._append(page_id, payload[MAX_BLOCKS_PER_REQUEST:])
        if page.is_read_only:
            self._call(self.client.pages.update, page_id=page_id, is_locked=True)
        logger.info("Created page %s (%s)", page_id, page.title)
        return page.model_copy(
            update={
                "id": page_id,
                "metadata": page.metadata.model_copy(
                    update={
                        "notion_url": response.get("url")
                        or notion_page_url(page_id)
                    }
                ),
            }
        )

    def update(self, page: RemotePage) -> RemotePage:
        """Replace the page's title and its whole block sequence.

        Raises:
            PageNotFoundError: If the page no longer exists.
        """
        try:
            self._call(
                self.client.pages.update,
                page_id=page.id,
                properties=self._title_property(page.title),
                is_locked=page.is_read_only,
                erase_content=True,
            )
        except HTTPResponseError as e:
            if _is_not_found(e):
                raise PageNotFoundError(page.id) from e
            raise

        self._append(page.id, [block.to_notion() for block in page.blocks])
        logger.info("Updated page %s (%s)", page.id, page.title)
        if page.metadata.notion_url:
            return page
        return page.model_copy(
            update={
                "metadata": page.metadata.model_copy(
                    update={"notion_url": notion_page_url(page.id)}
                )
            }
        )

    def validate_connection(self) -> str:
        """Return the integration's bot name; raises on a bad token."""
        me = self._call(self.client.users.me)
        return str(me.get("name") or me.get("id", ""))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _append(self, page_id: str, payload: list[dict[str, Any]]) -> None:
        for batch in _batches(payload, MAX_BLOCKS_PER_REQUEST):
            self._call(
                self.client.blocks.children.append,
                block_id=page_id,
                children=batch,
            )

    def _find_github_url(self, page_id: str) -> str | None:
        """Link target of a leading source callout, if the page has one."""
        response = self._call(
            self.client.blocks.children.list, block_id=page_id, page_size=1
        )
        results = response.get("results", [])
        if not results or results[0].get("type") != "callout":
            return None
        rich_text = results[0].get("callout", {}).get("rich_text", [])
        if not _plain_text(rich_text).startswith(GITHUB_LINK_LABEL):
            return None
        for rt in rich_text:
            url = rt.get("href") or (rt.get("text", {}).get("link") or {}).get("url")
            if url:
                return url
        return None

    def _title_property(self, title: str) -> dict[str, Any]:
        key = self.title_property if self.database_id else "title"
        return {
            key: {
                "title": [
                    {"type": "text", "text": {"content": title[:NOTION_TEXT_LIMIT]}}
                ]
            }
        }

    @staticmethod
    def _extract_title(response: dict[str, Any]) -> str:
        for prop in response.get("properties", {}).values():
            if prop.get("type") == "title":
                return _plain_text(prop.get("title", []))
        return ""
