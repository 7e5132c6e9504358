"""
REST client for the remote realtime store.

Each auction lives at `<database>/auctions/<auction_id>.json`. Audience
displays subscribe to that path; the auctioneer device writes it.

Integrates with the store's REST surface:
- GET  returns the document, or JSON null when the path is empty
- PUT  replaces the document at the path
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from .. import config
from .local_cache import strip_embedded_photos

logger = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """Raised when the remote store cannot be read or written."""

    def __init__(self, auction_id: str, operation: str, cause: Exception):
        self.auction_id = auction_id
        self.operation = operation
        self.cause = cause
        super().__init__(f"Remote {operation} failed for auction {auction_id}: {cause}")


def drop_none_values(value: Any) -> Any:
    """
    Recursively drop None-valued mapping entries (the store rejects them).

    None items inside lists become JSON null, which the store accepts.
    """
    if isinstance(value, dict):
        return {k: drop_none_values(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [drop_none_values(item) for item in value]
    return value


def prepare_document(document: Dict) -> Dict:
    """
    Make a document safe and small enough for the remote store.

    Strips embedded photos (URL photos are kept), drops None values and
    stamps `lastUpdated` in epoch milliseconds. The input is not mutated.
    """
    prepared = drop_none_values(strip_embedded_photos(dict(document)))
    prepared['lastUpdated'] = int(time.time() * 1000)
    return prepared


class RemoteStore:
    """Client for auction documents in the remote realtime store."""

    def __init__(
        self,
        database_url: str = config.REMOTE_DATABASE_URL,
        auth_token: Optional[str] = None,
        auctions_path: str = config.REMOTE_AUCTIONS_PATH,
        write_timeout: Optional[float] = config.REMOTE_WRITE_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize remote store client.

        Args:
            database_url: Base URL of the realtime database
            auth_token: Optional database secret / ID token (sent as `auth`)
            auctions_path: Path under which auction documents live
            write_timeout: Seconds before a write is abandoned
            session: Optional requests session (for connection pooling / tests)
        """
        self.database_url = database_url.rstrip('/')
        self.auth_token = auth_token
        self.auctions_path = auctions_path.strip('/')
        self.write_timeout = write_timeout

        # Session for connection pooling
        self.session = session or requests.Session()

    def auction_url(self, auction_id: str) -> str:
        return f"{self.database_url}/{self.auctions_path}/{auction_id}.json"

    def _params(self) -> Dict[str, str]:
        return {'auth': self.auth_token} if self.auth_token else {}

    def fetch(self, auction_id: str) -> Optional[Dict]:
        """
        Fetch the document stored for an auction.

        No timeout is applied; a hung fetch leaves the caller waiting.

        Args:
            auction_id: Auction identifier

        Returns:
            Document mapping, or None when nothing is stored at the path

        Raises:
            RemoteStoreError: On transport or HTTP failure
        """
        url = self.auction_url(auction_id)
        try:
            logger.debug(f"GET {url}")
            response = self.session.get(url, params=self._params())
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to load auction {auction_id} from remote store: {e}")
            raise RemoteStoreError(auction_id, 'fetch', e) from e

        if not data:
            logger.info(f"No data in remote store for: {auction_id}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring non-document value at {url}: {type(data).__name__}")
            return None

        log = data.get('auctionLog')
        logger.info(
            f"Loaded from remote store: {auction_id} | "
            f"Log entries: {len(log) if isinstance(log, (list, dict)) else 0}"
        )
        return data

    def write(self, auction_id: str, document: Dict) -> None:
        """
        Replace the document stored for an auction.

        Args:
            auction_id: Auction identifier
            document: Full auction state

        Raises:
            RemoteStoreError: On transport or HTTP failure (e.g. permission denied)
        """
        url = self.auction_url(auction_id)
        prepared = prepare_document(document)

        try:
            logger.debug(f"PUT {url} ({len(prepared)} fields)")
            response = self.session.put(
                url,
                params=self._params(),
                json=prepared,
                timeout=self.write_timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            status = getattr(getattr(e, 'response', None), 'status_code', None)
            if status in (401, 403):
                logger.error("Remote store permission denied - check database rules for /auctions")
            logger.error(f"Failed to save auction {auction_id} to remote store: {e}")
            raise RemoteStoreError(auction_id, 'write', e) from e

        logger.info(f"Saved auction {auction_id} to remote store")
