"""Google Cloud Logging API backend."""

from __future__ import annotations

import json
import sys
from typing import Any, Dict

from .base import Fields, StructuredBackend

try:  # pragma: no cover - optional dependency
    from google.cloud import logging as gcl_logging
    from google.api_core.exceptions import GoogleAPICallError
except Exception as exc:  # pragma: no cover - optional dependency
    gcl_logging = None
    GoogleAPICallError = Exception
    _IMPORT_ERROR = exc
else:
    _IMPORT_ERROR = None

_SEVERITY = {
    "TRACE": "DEBUG",
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
}


class GoogleCloudLoggingBackend(StructuredBackend):
    """Write wide events as structured entries to Google Cloud Logging."""

    def __init__(
        self,
        *,
        project: str | None,
        log_name: str,
        level: str = "DEBUG",
        bindings: Fields = None,
        _gcl_logger: Any = None,
    ) -> None:
        """Create a backend bound to ``log_name``; children reuse the parent's client."""

        super().__init__(level=level, bindings=bindings)

        if _gcl_logger is None:
            if gcl_logging is None:
                raise RuntimeError(
                    "google-cloud-logging is required for GoogleCloudLoggingBackend"
                ) from _IMPORT_ERROR

            client = gcl_logging.Client(project=project)
            _gcl_logger = client.logger(log_name)
            project = project or client.project

        self._logger = _gcl_logger # The cloud logger handle
        self._project = project
        self._log_name = log_name

    def _spawn(self, bindings: Dict[str, Any]) -> "GoogleCloudLoggingBackend":
        return GoogleCloudLoggingBackend(
            project=self._project,
            log_name=self._log_name,
            level=self._level,
            bindings=bindings,
            _gcl_logger=self._logger,
        )

    def _write(self, record: Dict[str, Any]) -> None:
        payload = dict(record)
        severity = _SEVERITY.get(str(payload.pop("level", "INFO")), "DEFAULT")

        trace_id = payload.get("trace_id")
        if trace_id and self._project:
            payload.setdefault(
                "logging.googleapis.com/trace",
                f"projects/{self._project}/traces/{trace_id}",
            )

        try:
            self._logger.log_struct(payload, severity=severity)
        except GoogleAPICallError:  # pragma: no cover - network error
            print(
                "google cloud logging emission failed: " + json.dumps(payload, default=str),
                file=sys.stderr,
            )
            raise
