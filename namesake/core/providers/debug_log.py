"""Shared debug-logging helpers for name-data providers.

When `providers.debug_logs` is enabled, each provider call writes a
sanitized JSON record under ./logs/. API keys never reach disk.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_SECRET_KEY_MARKERS = ("api_key", "apikey", "authorization", "access_token", "secret", "password")
_EXACT_SECRET_KEYS = {"key", "token"}
_MAX_STRING = 200


def get_logs_dir() -> Path:
    """Get logs directory, create if needed."""
    logs_dir = Path("./logs")
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def sanitize_for_logs(value: Any, key_hint: str = "") -> Any:
    """Recursively redact secrets and truncate long strings."""
    key = key_hint.lower()
    if key in _EXACT_SECRET_KEYS or any(marker in key for marker in _SECRET_KEY_MARKERS):
        return "[REDACTED_SECRET]"

    if isinstance(value, dict):
        return {str(k): sanitize_for_logs(v, key_hint=str(k)) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [sanitize_for_logs(item, key_hint=key_hint) for item in value]

    if isinstance(value, str) and len(value) > _MAX_STRING:
        return value[:_MAX_STRING] + "...[truncated]"

    return value


def _serialize_response(response: Any) -> Any:
    if isinstance(response, (dict, list)):
        return sanitize_for_logs(response, key_hint="response")

    if hasattr(response, "model_dump"):
        try:
            return sanitize_for_logs(response.model_dump(mode="json"), key_hint="response")
        except Exception:
            pass

    summary: dict[str, Any] = {"type": type(response).__name__}
    for attr in ("id", "model"):
        val = getattr(response, attr, None)
        if isinstance(val, str) and val:
            summary[attr] = val
    return summary


def log_request_response(
    function_name: str,
    request: dict,
    response: Any,
    provider: str = "",
) -> None:
    """Log sanitized request/response data to a JSON file."""
    logs_dir = get_logs_dir()
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    prefix = f"{provider}_" if provider else ""
    log_file = logs_dir / f"{timestamp}_{prefix}{function_name}.json"

    log_data = {
        "timestamp": datetime.now().isoformat(),
        "function": function_name,
        "provider": provider,
        "request": sanitize_for_logs(request, key_hint="request"),
        "response": _serialize_response(response),
    }

    try:
        with open(log_file, "w", encoding="utf-8") as f:
            json.dump(log_data, f, indent=2, default=str)
    except OSError as exc:
        logger.warning("Failed to write provider debug log %s: %s", log_file, exc)
