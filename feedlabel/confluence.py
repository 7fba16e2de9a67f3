"""
Document store: fetch a page body as a DocumentTree and write it back.

ConfluenceStore talks to the Confluence Cloud REST v2 API; InMemoryStore
holds pages in a dict with the same optimistic-version behavior.

Dependencies:
  pip install requests
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from feedlabel.adf import AdfTree
from feedlabel.events import EventLog, NullLog
from feedlabel.html_tree import HtmlTree
from feedlabel.secrets import get_confluence_credentials
from feedlabel.tree import DocumentTree

PAGES_PATH = "/wiki/api/v2/pages"

# config name -> Confluence body format
BODY_FORMATS = {"adf": "atlas_doc_format", "storage": "storage"}


class FetchError(RuntimeError):
    pass


class PersistError(RuntimeError):
    pass


@dataclass
class FetchedDocument:
    page_id: str
    title: str
    version: int
    tree: DocumentTree


def parse_body(raw: Any, body_format: str) -> DocumentTree:
    """Turn a page body (as returned by the API) into a tree.

    v2 may wrap the body as ``{"value": ...}``; the value is a JSON string for
    ADF and markup for storage.
    """
    value = raw.get("value") if isinstance(raw, dict) and "value" in raw else raw
    if value is None:
        raise FetchError("Page has no body")
    if body_format == "atlas_doc_format":
        try:
            return AdfTree.from_json(value)
        except ValueError as e:
            raise FetchError(f"Unexpected ADF structure: {e}") from e
    if body_format == "storage":
        if not isinstance(value, str):
            raise FetchError("Storage body is not markup")
        return HtmlTree.from_markup(value)
    raise FetchError(f"Unsupported body format: {body_format}")


def _version_number(page: Dict[str, Any]) -> int:
    ver = page.get("version")
    num = ver.get("number") if isinstance(ver, dict) else None
    if isinstance(num, bool) or not isinstance(num, int):
        raise FetchError("Page response has no version number")
    return num


class DocumentStore:
    def fetch_document(self, page_id: str) -> FetchedDocument:
        raise NotImplementedError

    def persist_document(self, page_id: str, title: str, version: int, tree: DocumentTree) -> None:
        raise NotImplementedError


@dataclass
class ConfluenceStore(DocumentStore):
    """Confluence Cloud pages over REST v2 with basic auth (email + API token)."""

    base_url: str
    email: Optional[str] = None
    api_token: Optional[str] = None
    representation: str = "adf"
    timeout_s: int = 30
    log: EventLog = field(default_factory=NullLog, repr=False)

    @property
    def body_format(self) -> str:
        try:
            return BODY_FORMATS[self.representation]
        except KeyError:
            raise ValueError(f"Unknown representation: {self.representation}") from None

    def _session(self) -> requests.Session:
        email, token = self.email, self.api_token
        if not email or not token:
            env_email, env_token = get_confluence_credentials()
            email, token = email or env_email, token or env_token
        s = requests.Session()
        if email and token:
            s.auth = (email, token)
        s.headers.update({"Accept": "application/json"})
        return s

    def _page_url(self, page_id: str) -> str:
        return f"{self.base_url.rstrip('/')}{PAGES_PATH}/{page_id}"

    def fetch_document(self, page_id: str) -> FetchedDocument:
        body_format = self.body_format
        try:
            r = self._session().get(
                self._page_url(page_id),
                params={"body-format": body_format},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            self.log.error("Fetch page failed", {"pageId": page_id, "error": str(e)})
            raise FetchError(f"Fetch page failed: {e}") from e
        if r.status_code != 200:
            self.log.error("Fetch page failed", {"status": r.status_code, "body": r.text[:2000]})
            raise FetchError(f"Fetch page failed: {r.status_code}")

        try:
            page = r.json()
        except ValueError as e:
            raise FetchError(f"Page response is not JSON: {e}") from e
        if not isinstance(page, dict):
            raise FetchError("Page response is not an object")

        title = page.get("title")
        if not isinstance(title, str):
            raise FetchError("Page response has no title")
        version = _version_number(page)
        raw = (page.get("body") or {}).get(body_format)
        tree = parse_body(raw, body_format)
        return FetchedDocument(
            page_id=str(page.get("id") or page_id),
            title=title,
            version=version,
            tree=tree,
        )

    def persist_document(self, page_id: str, title: str, version: int, tree: DocumentTree) -> None:
        payload = {
            "id": page_id,
            "status": "current",
            "title": title,
            "body": {"representation": tree.representation, "value": tree.serialize()},
            "version": {"number": (version or 1) + 1},
        }
        try:
            r = self._session().put(
                self._page_url(page_id),
                data=json.dumps(payload),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            self.log.error("Update page failed", {"pageId": page_id, "error": str(e)})
            raise PersistError(f"Update page failed: {e}") from e
        if r.status_code >= 300:
            self.log.error("Update page failed", {"status": r.status_code, "text": r.text[:2000]})
            if r.status_code == 409:
                raise PersistError(f"Update page failed: {r.status_code} (stale version {version})")
            raise PersistError(f"Update page failed: {r.status_code}")


@dataclass
class InMemoryStore(DocumentStore):
    """Pages held in memory as serialized bodies; used for tests and local runs."""

    representation: str = "adf"
    pages: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    writes: int = 0

    def add_page(self, page_id: str, title: str, body: Any, version: int = 1) -> None:
        if not isinstance(body, str):
            body = json.dumps(body)
        self.pages[page_id] = {"title": title, "version": version, "body": body}

    def body(self, page_id: str) -> str:
        return self.pages[page_id]["body"]

    def fetch_document(self, page_id: str) -> FetchedDocument:
        page = self.pages.get(page_id)
        if page is None:
            raise FetchError(f"Fetch page failed: 404 ({page_id})")
        tree = parse_body(page["body"], BODY_FORMATS[self.representation])
        return FetchedDocument(page_id=page_id, title=page["title"], version=page["version"], tree=tree)

    def persist_document(self, page_id: str, title: str, version: int, tree: DocumentTree) -> None:
        page = self.pages.get(page_id)
        if page is None:
            raise PersistError(f"Update page failed: 404 ({page_id})")
        if version != page["version"]:
            raise PersistError(
                f"Update page failed: 409 (stale version {version}, current {page['version']})"
            )
        page.update({"title": title, "version": version + 1, "body": tree.serialize()})
        self.writes += 1
