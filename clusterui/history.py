"""Spark and Yarn history pages served through the cluster gateway."""

from __future__ import annotations

import logging
import webbrowser
from typing import Callable

from .connection import ConnectionSource, normalize
from .constants import SPARK_HISTORY_PATH, YARN_HISTORY_PATH
from .lookup import ClusterLookup
from .tree import get_error_message

LOG = logging.getLogger(__name__)

UrlOpener = Callable[[str], object]


def spark_history_url(host: str, port: str) -> str:
    return f"https://{host}:{port}/{SPARK_HISTORY_PATH}"


def yarn_history_url(host: str, port: str) -> str:
    return f"https://{host}:{port}/{YARN_HISTORY_PATH}"


class OpenHistoryTask:
    """Open the Spark or Yarn history page for the selected connection."""

    def __init__(
        self,
        lookup: ClusterLookup,
        *,
        opener: UrlOpener = webbrowser.open,
        show_error: Callable[[str], None] | None = None,
    ) -> None:
        self._lookup = lookup
        self._opener = opener
        self._show_error = show_error or LOG.error

    async def execute(self, source: ConnectionSource | None, *, spark: bool) -> str | None:
        """Return the opened URL, or ``None`` when nothing could be opened."""

        try:
            cluster = await self._lookup.lookup(source)
            if cluster is None:
                name = "Spark" if spark else "Yarn"
                self._show_error(f"Please connect to the Spark cluster before View {name} History.")
                return None
            descriptor = normalize(cluster)
            build = spark_history_url if spark else yarn_history_url
            url = build(descriptor.host, descriptor.port)
            self._opener(url)
        except Exception as exc:
            self._show_error(get_error_message(exc))
            return None
        LOG.info("Opened history page", extra={"url": url})
        return url


__all__ = ["OpenHistoryTask", "spark_history_url", "yarn_history_url"]
