"""Query pipeline: parse the query, call Ollama, extract embryos."""

import logging
import re
from typing import Mapping

from pydantic import TypeAdapter, ValidationError

from completion_client import CompletionClient, CompletionTransportError
from config import DEFAULT_OLLAMA_MODEL, DEFAULT_OLLAMA_URL, ConfigMap, resolve_config
from extraction import extract_embryos
from models import EmbryoList

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

_query_adapter = TypeAdapter(dict[str, str])
_TIMEOUT_PATTERN = re.compile(r"[0-9]+(\.[0-9]+)?")


class QueryError(Exception):
    """The inbound query cannot be handled (client error)."""


class MalformedInboundQuery(QueryError):
    """Query body is not a JSON object of string values."""


class InvalidTimeoutValue(QueryError):
    """Query ``timeout`` is present but not a non-negative number of seconds."""


def parse_query(raw_body: str | bytes) -> dict[str, str]:
    try:
        return _query_adapter.validate_json(raw_body)
    except ValidationError as e:
        raise MalformedInboundQuery(f"Query must be a JSON object of strings: {e.errors()[0]['msg']}") from e


def parse_timeout(query: Mapping[str, str]) -> float:
    raw = query.get("timeout")
    if raw is None:
        return DEFAULT_TIMEOUT_SECONDS

    if not _TIMEOUT_PATTERN.fullmatch(raw):
        raise InvalidTimeoutValue(f"Invalid timeout {raw!r}: must be decimal seconds like \"5\" or \"0.5\"")
    return float(raw)


class QueryPipeline:
    """Handles one query at a time; holds no per-request state."""

    def __init__(
        self,
        client: CompletionClient,
        config_map: ConfigMap | None = None,
        default_url: str = DEFAULT_OLLAMA_URL,
        default_model: str = DEFAULT_OLLAMA_MODEL,
    ):
        self.client = client
        self.config_map = config_map or {}
        self.default_url = default_url
        self.default_model = default_model

    def resolved_config(self):
        return resolve_config(self.config_map, self.default_url, self.default_model)

    async def handle(self, raw_body: str | bytes) -> EmbryoList:
        """Run the pipeline for one raw query body.

        Raises QueryError subclasses for bad input. Downstream failures
        give an empty list instead.
        """
        query = parse_query(raw_body)
        value = query.get("value", "")
        timeout = parse_timeout(query)

        conf = self.resolved_config()

        try:
            body = await self.client.complete(conf.url, conf.model, value)
        except CompletionTransportError as e:
            logger.error("No results, completion unavailable: %s", e)
            return EmbryoList(embryo_list=[])

        embryos = extract_embryos(body, timeout)
        logger.info("Query produced %d embryos", len(embryos))
        return EmbryoList(embryo_list=embryos)
