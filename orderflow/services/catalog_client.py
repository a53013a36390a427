# orderflow/services/catalog_client.py
import requests
from requests import RequestException

from orderflow.domain.errors import UpstreamFailure, UpstreamTimeout
from orderflow.utils.retry import http_retry
from orderflow.utils.settings import CATALOG_SERVICE_URL, CATALOG_TIMEOUT_SECONDS
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogClient:
    """
    Odczyt katalogu (restauracje, pozycje menu) z zewnetrznego serwisu.
    Brak rekordu (404) -> None, decyzje o dostepnosci podejmuje PricingEngine.
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or CATALOG_SERVICE_URL).rstrip("/")
        self.timeout = timeout or CATALOG_TIMEOUT_SECONDS

    def fetch_restaurant(self, restaurant_id: str) -> dict | None:
        return self._get(f"/restaurants/{restaurant_id}")

    def fetch_menu_item(self, menu_item_id: str) -> dict | None:
        return self._get(f"/menu-items/{menu_item_id}")

    def _get(self, path: str) -> dict | None:
        try:
            return self._get_with_retry(path)
        except requests.Timeout as e:
            raise UpstreamTimeout(f"Catalog service timed out on {path}") from e
        except RequestException as e:
            raise UpstreamFailure(f"Catalog service error on {path}: {e}") from e

    @http_retry()
    def _get_with_retry(self, path: str) -> dict | None:
        url = f"{self.base_url}{path}"
        logger.info(f"CatalogClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()
