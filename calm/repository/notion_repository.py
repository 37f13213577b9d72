import logging

import requests

from calm.errors import UpstreamError


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"
PAGE_SIZE = 100
DURATION_PROPERTY = "Actual Duration"


class NotionTaskRepository:
    """Reads tasks from a Notion database and updates their tracked duration."""

    def __init__(
        self,
        api_key,
        database_id=None,
        api_url=DEFAULT_API_URL,
        notion_version=DEFAULT_NOTION_VERSION,
        timeout=None,
        session=None,
    ):
        self.api_key = api_key
        self.database_id = database_id
        self.api_url = api_url.rstrip("/")
        self.notion_version = notion_version
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, with_body=False):
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Notion-Version": self.notion_version,
        }
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _request(self, method, path, payload=None):
        response = self.session.request(
            method,
            f"{self.api_url}{path}",
            headers=self._headers(with_body=payload is not None),
            json=payload,
            timeout=self.timeout,
        )
        if not response.ok:
            logger.warning(
                "notion request failed",
                extra={"method": method, "path": path, "status": response.status_code},
            )
            raise UpstreamError(response.status_code, response.text)
        return response.json()

    def query_tasks(self, start_date, end_date, include_all=False):
        """Return the pages dated within [start_date, end_date].

        Only pages with Status "Completed" are requested unless include_all is
        set. A single page of at most PAGE_SIZE results is fetched.
        """
        conditions = [
            {"property": "Date", "date": {"on_or_after": start_date.isoformat()}},
            {"property": "Date", "date": {"on_or_before": end_date.isoformat()}},
        ]
        if not include_all:
            conditions.append(
                {"property": "Status", "select": {"equals": "Completed"}}
            )
        data = self._request(
            "POST",
            f"/databases/{self.database_id}/query",
            {"filter": {"and": conditions}, "page_size": PAGE_SIZE},
        )
        results = data.get("results", [])
        logger.debug(
            "notion query",
            extra={"start": start_date.isoformat(), "end": end_date.isoformat(), "count": len(results)},
        )
        return results

    def fetch_page(self, page_id):
        return self._request("GET", f"/pages/{page_id}")

    def fetch_actual_duration(self, page_id):
        page = self.fetch_page(page_id)
        prop = (page.get("properties") or {}).get(DURATION_PROPERTY) or {}
        return prop.get("number") or 0

    def update_actual_duration(self, page_id, hours):
        return self._request(
            "PATCH",
            f"/pages/{page_id}",
            {"properties": {DURATION_PROPERTY: {"number": hours}}},
        )
