"""
API Utilities Module

FLOW OVERVIEW
- APIRequestValidator
  • validate_json_request → parse/validate JSON and return (ok, data, error).
  • require_fields → first missing field name, if any.
  • client_ip → caller address honoring X-Forwarded-For.

- error_response
  • Uniform `{error}` JSON bodies with status codes.

- APIRateLimiter
  • check_rate_limit(key, limit, window_seconds) → fixed-window counter kept on the app.

Shared by the payment, invoice and admin blueprints to avoid code duplication.
"""

import logging
import time
from typing import Dict, Any, Tuple, Optional, Iterable
from flask import request, current_app, jsonify


class APIRequestValidator:
    """Handles common request validation logic."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def client_ip(self) -> Optional[str]:
        forwarded = request.headers.get('X-Forwarded-For', '')
        if forwarded:
            return forwarded.split(',')[0].strip()
        return request.remote_addr

    def validate_json_request(self) -> Tuple[bool, Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """
        Validate and parse JSON request.

        Returns:
            Tuple of (is_valid, data, error_response)
        """
        data = request.get_json(silent=True)

        if data is None:
            self.logger.warning(f"Invalid or missing JSON body from {self.client_ip()} on {request.path}")
            return False, None, {'success': False, 'error': 'Invalid request format. JSON payload required.'}

        if not isinstance(data, dict):
            self.logger.warning(f"Invalid data type from {self.client_ip()}: {type(data)}")
            return False, None, {'success': False, 'error': 'Request data must be a JSON object.'}

        return True, data, None

    @staticmethod
    def require_fields(data: Dict[str, Any], fields: Iterable[str]) -> Optional[str]:
        """Return the first field that is missing or empty."""
        for field in fields:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                return field
        return None


def error_response(message: str, status_code: int, **extra):
    """Build a JSON error response."""
    body = {'error': message}
    body.update(extra)
    return jsonify(body), status_code


class APIRateLimiter:
    """Fixed-window rate limiting kept in process memory."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def check_rate_limit(self, key: str, limit: int, window_seconds: int = 60) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Count a hit for `key` and decide whether it is allowed.

        Args:
            key: Identity of the caller/action being limited
            limit: Hits allowed per window
            window_seconds: Window length

        Returns:
            Tuple of (is_allowed, error_response)
        """
        if not hasattr(current_app, 'rate_limit_counts'):
            current_app.rate_limit_counts = {}
        counts = current_app.rate_limit_counts

        current_window = int(time.time()) // window_seconds
        window_key = (key, window_seconds, current_window)
        counts[window_key] = counts.get(window_key, 0) + 1

        # Drop windows older than the previous one
        stale = [k for k in counts if k[1] == window_seconds and k[2] < current_window - 1]
        for old_key in stale:
            del counts[old_key]

        if counts[window_key] > limit:
            self.logger.warning(f"Rate limit exceeded for {key}: {counts[window_key]} hits")
            return False, {
                'success': False,
                'error_code': 'RATE_LIMIT_EXCEEDED',
                'error': f'Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.'
            }

        return True, None


# Global instances
request_validator = APIRequestValidator()
rate_limiter = APIRateLimiter()
