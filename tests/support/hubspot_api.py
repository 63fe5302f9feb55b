from __future__ import annotations

import json
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import httpx


@dataclass
class FakeHubSpotAPI:
    """
    Minimal in-process HubSpot CRM API for `httpx.MockTransport`.

    - Search responses are queued per object type and served in order.
    - Associations are static `{from_type/to_type: {from_id: [to_ids]}}`.
    - Contact emails are served by the contacts batch read endpoint.
    - `failures` maps an object type to status codes returned before any
      search response is served.
    """

    search_pages: dict[str, list[dict[str, Any]]] = field(default_factory=lambda: defaultdict(list))
    associations: dict[str, dict[str, list[str]]] = field(default_factory=dict)
    contact_emails: dict[str, str] = field(default_factory=dict)
    failures: dict[str, list[int]] = field(default_factory=lambda: defaultdict(list))
    requests: list[httpx.Request] = field(default_factory=list)

    def queue_search(self, object_type: str, results: list[dict[str, Any]], after: int | None = None) -> None:
        page: dict[str, Any] = {"results": results}
        if after is not None:
            page["paging"] = {"next": {"after": str(after)}}
        self.search_pages[object_type].append(page)

    def fail_search(self, object_type: str, *status_codes: int) -> None:
        self.failures[object_type].extend(status_codes)

    def search_bodies(self, object_type: str) -> list[dict[str, Any]]:
        return [
            json.loads(request.content)
            for request in self.requests
            if request.url.path == f"/crm/v3/objects/{object_type}/search"
        ]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        body = json.loads(request.content) if request.content else {}
        parts = path.strip("/").split("/")

        # /crm/v3/objects/{type}/search
        if len(parts) == 5 and parts[2] == "objects" and parts[4] == "search":
            object_type = parts[3]
            if self.failures[object_type]:
                return httpx.Response(self.failures[object_type].pop(0), json={"message": "error"})
            pages = self.search_pages[object_type]
            if not pages:
                return httpx.Response(200, json={"results": []})
            return httpx.Response(200, json=pages.pop(0))

        # /crm/v3/associations/{FROM}/{TO}/batch/read
        if len(parts) == 7 and parts[2] == "associations":
            key = f"{parts[3].lower()}/{parts[4].lower()}"
            mapping = self.associations.get(key, {})
            results = [
                {"from": {"id": item["id"]}, "to": [{"id": to_id} for to_id in mapping[item["id"]]]}
                for item in body.get("inputs", [])
                if item["id"] in mapping
            ]
            return httpx.Response(200, json={"results": results})

        # /crm/v3/objects/contacts/batch/read
        if len(parts) == 6 and parts[2] == "objects" and parts[4] == "batch":
            results = []
            for item in body.get("inputs", []):
                properties = {}
                if item["id"] in self.contact_emails:
                    properties["email"] = self.contact_emails[item["id"]]
                results.append({"id": item["id"], "properties": properties})
            return httpx.Response(200, json={"results": results})

        return httpx.Response(404, json={"message": f"unknown path {path}"})


def contact(
    contact_id: str,
    *,
    email: str | None,
    created_at: str,
    updated_at: str | None = None,
    **properties: Any,
) -> dict[str, Any]:
    props = dict(properties)
    if email is not None:
        props["email"] = email
    props.setdefault("lastmodifieddate", updated_at or created_at)
    return {
        "id": contact_id,
        "properties": props,
        "createdAt": created_at,
        "updatedAt": updated_at or created_at,
    }


def company(
    company_id: str,
    *,
    created_at: str,
    updated_at: str | None = None,
    **properties: Any,
) -> dict[str, Any]:
    props = dict(properties)
    props.setdefault("hs_lastmodifieddate", updated_at or created_at)
    return {
        "id": company_id,
        "properties": props,
        "createdAt": created_at,
        "updatedAt": updated_at or created_at,
    }


def meeting(
    meeting_id: str,
    *,
    created_at: str,
    updated_at: str | None = None,
    title: str | None = None,
) -> dict[str, Any]:
    props: dict[str, Any] = {
        "hs_createdate": created_at,
        "hs_lastmodifieddate": updated_at or created_at,
    }
    if title is not None:
        props["hs_meeting_title"] = title
    return {
        "id": meeting_id,
        "properties": props,
        "createdAt": created_at,
        "updatedAt": updated_at or created_at,
    }
