#!/usr/bin/env python3
"""
Prometheus client for fetching the request rate that drives the metric floor
"""

import logging
from typing import Optional

import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from hpa_scaler.models.prometheus import PrometheusQueryResponse
from .errors import QueryError

logger = logging.getLogger(__name__)


def parse_query_response(body: bytes) -> PrometheusQueryResponse:
    """
    Unmarshal the body of a Prometheus instant query

    Raises:
        QueryError: if the body is not a valid query envelope
    """
    try:
        query_response = PrometheusQueryResponse.model_validate_json(body)
    except ValidationError as e:
        raise QueryError(f"Failed unmarshalling prometheus query response: {e}") from e

    if query_response.status != "success":
        raise QueryError(
            f"Prometheus query returned status {query_response.status}: "
            f"{query_response.error_type or ''} {query_response.error or ''}".strip()
        )

    logger.debug(f"Successfully unmarshalled prometheus query response: {query_response.model_dump()}")
    return query_response


class PrometheusClient:
    """Queries the Prometheus HTTP API"""

    def __init__(self, timeout: float = 10, retries: int = 3, session: Optional[requests.Session] = None):
        """
        Initialize Prometheus client

        Args:
            timeout: Timeout in seconds for a single request
            retries: Transparent retries for connection errors and 5xx responses
            session: Optional preconfigured session
        """
        self.timeout = timeout
        self.session = session or self._build_session(retries)

    @staticmethod
    def _build_session(retries: int) -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=retries,
            backoff_factor=0.5,
            status_forcelist=(500, 502, 503, 504),
            allowed_methods=frozenset(["GET"]),
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def query(self, query: str, server_url: str) -> PrometheusQueryResponse:
        """
        Execute an instant query

        Args:
            query: PromQL expression
            server_url: Base url of the Prometheus server

        Raises:
            QueryError: on transport failure, bad status or malformed body
        """
        url = f"{server_url.rstrip('/')}/api/v1/query"

        try:
            # requests handles the url encoding of the query
            response = self.session.get(url, params={'query': query}, timeout=self.timeout)
            response.raise_for_status()
            body = response.content
        except requests.exceptions.RequestException as e:
            raise QueryError(f"Executing prometheus query against {server_url} failed: {e}") from e

        return parse_query_response(body)

    def get_request_rate(self, query: str, server_url: str) -> float:
        """
        Return the scalar value of the first sample of the query result

        Raises:
            QueryError: if the query fails or has no usable sample
        """
        query_response = self.query(query, server_url)

        try:
            return query_response.get_request_rate()
        except ValueError as e:
            raise QueryError(f"Retrieving request rate from query response failed: {e}") from e

    def close(self):
        self.session.close()
