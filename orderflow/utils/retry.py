# orderflow/utils/retry.py
import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from orderflow.domain.errors import UpstreamTimeout
from orderflow.utils.settings import UPSTREAM_MAX_ATTEMPTS

#ponawiamy tylko timeouty i brak polaczenia, odpowiedz 4xx/5xx to decyzja upstreamu
RETRYABLE = (requests.Timeout, requests.ConnectionError)


def http_retry(attempts: int | None = None):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts or UPSTREAM_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(RETRYABLE),
    )


def storage_retry(attempts: int | None = None):
    """Tylko dla odczytow z bazy, zapisy warunkowe nie sa ponawiane."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts or UPSTREAM_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(UpstreamTimeout),
    )
