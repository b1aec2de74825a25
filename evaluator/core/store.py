"""
Remote document store clients

Documents are plain dicts of fields; reads return them with an "id" key added.

- DocumentStore: async interface used by the collection loader
- InMemoryStore: process-local store (development, tests, seeded demo data)
- HttpDocumentStore: REST client over httpx.AsyncClient
"""
import copy
import logging
import time
import uuid
from collections import Counter
from typing import Any, Dict, List, Optional, Set

import httpx

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the remote store cannot serve a request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class DocumentStore:
    """Collection-oriented async document store"""

    async def get_all(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def query(self, collection: str, **equals: Any) -> List[Dict[str, Any]]:
        """Documents whose fields equal every given value"""
        raise NotImplementedError

    async def add(self, collection: str, fields: Dict[str, Any]) -> str:
        raise NotImplementedError

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        pass


def _sort_key(value: Any):
    # missing values sort after everything else
    return (value is None, value if value is not None else "")


class InMemoryStore(DocumentStore):
    """
    Dict-backed store

    `failing` holds collection names whose reads raise StoreError, and
    `fetch_counts` counts get_all calls per collection.
    """

    def __init__(self, data: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.failing: Set[str] = set()
        self.fetch_counts: Counter = Counter()
        for collection, docs in (data or {}).items():
            for doc in docs:
                fields = dict(doc)
                doc_id = str(fields.pop("id", None) or self._new_id())
                self._collections.setdefault(collection, {})[doc_id] = fields

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex[:20]

    def _check(self, collection: str) -> None:
        if collection in self.failing:
            raise StoreError(f"Collection '{collection}' is unavailable")

    def _docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    async def get_all(self, collection, order_by=None, descending=False):
        self.fetch_counts[collection] += 1
        self._check(collection)
        docs = [{"id": doc_id, **copy.deepcopy(fields)} for doc_id, fields in self._docs(collection).items()]
        if order_by:
            present = [d for d in docs if d.get(order_by) is not None]
            missing = [d for d in docs if d.get(order_by) is None]
            present.sort(key=lambda d: _sort_key(d.get(order_by)), reverse=descending)
            docs = present + missing
        return docs

    async def get(self, collection, doc_id):
        self._check(collection)
        fields = self._docs(collection).get(doc_id)
        if fields is None:
            return None
        return {"id": doc_id, **copy.deepcopy(fields)}

    async def query(self, collection, **equals):
        self._check(collection)
        return [
            {"id": doc_id, **copy.deepcopy(fields)}
            for doc_id, fields in self._docs(collection).items()
            if all(fields.get(name) == value for name, value in equals.items())
        ]

    async def add(self, collection, fields):
        self._check(collection)
        doc_id = self._new_id()
        self._docs(collection)[doc_id] = copy.deepcopy(fields)
        return doc_id

    async def update(self, collection, doc_id, fields):
        self._check(collection)
        docs = self._docs(collection)
        if doc_id not in docs:
            raise StoreError(f"{collection}/{doc_id} not found", status_code=404)
        docs[doc_id].update(copy.deepcopy(fields))

    async def delete(self, collection, doc_id):
        self._check(collection)
        self._docs(collection).pop(doc_id, None)


class HttpDocumentStore(DocumentStore):
    """
    REST document store client

    Endpoints (relative to base_url):
        GET    /{collection}?orderBy=<field>&direction=asc|desc
        GET    /{collection}/{id}
        POST   /{collection}/query      {"where": {...}}
        POST   /{collection}            {...fields}  -> {"id": ...}
        PATCH  /{collection}/{id}       {...fields}
        DELETE /{collection}/{id}
    """

    def __init__(self, base_url: str, timeout: float = 10.0, token: str = ""):
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout
        self._token = token
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        if self._http is not None:
            return
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            headers=headers,
        )
        logger.info(f"HttpDocumentStore started, base_url={self._base_url}")

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _request(self, method: str, path: str, missing_ok: bool = False, **kwargs) -> Any:
        """
        Send a request and decode its JSON body

        Args:
            missing_ok: Return None on 404 instead of raising (single-document reads)

        Raises:
            StoreError: On transport errors, non-2xx responses and bodies that are not JSON
        """
        if self._http is None:
            await self.start()
        t0 = time.monotonic()
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {path} failed: {type(e).__name__}: {e}") from e
        elapsed_ms = (time.monotonic() - t0) * 1000
        logger.debug(f"{method} {path} → {response.status_code} ({elapsed_ms:.0f}ms)")

        if response.status_code == 404 and missing_ok:
            return None
        if response.status_code >= 400:
            raise StoreError(
                f"{method} {path} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(
                f"{method} {path} returned invalid JSON", status_code=response.status_code
            ) from e

    @staticmethod
    def _as_list(data: Any, method: str, path: str) -> List[Dict[str, Any]]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise StoreError(f"{method} {path} did not return a list of documents")
        return data

    async def get_all(self, collection, order_by=None, descending=False):
        params = {}
        if order_by:
            params = {"orderBy": order_by, "direction": "desc" if descending else "asc"}
        data = await self._request("GET", f"/{collection}", params=params)
        return self._as_list(data, "GET", f"/{collection}")

    async def get(self, collection, doc_id):
        return await self._request("GET", f"/{collection}/{doc_id}", missing_ok=True)

    async def query(self, collection, **equals):
        data = await self._request("POST", f"/{collection}/query", json={"where": equals})
        return self._as_list(data, "POST", f"/{collection}/query")

    async def add(self, collection, fields):
        data = await self._request("POST", f"/{collection}", json=fields)
        if not data or "id" not in data:
            raise StoreError(f"POST /{collection} did not return a document id")
        return str(data["id"])

    async def update(self, collection, doc_id, fields):
        await self._request("PATCH", f"/{collection}/{doc_id}", json=fields)

    async def delete(self, collection, doc_id):
        await self._request("DELETE", f"/{collection}/{doc_id}")
