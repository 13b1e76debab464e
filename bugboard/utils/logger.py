"""
Centralized Logging and Security Filtering
==========================================

This module provides the logging infrastructure for the BugBoard client.
It centralizes all diagnostic output while ensuring that passwords and
bearer tokens never reach the log files or the console.

Key Features:
-------------
- Sensitive Data Masking: Automatic redaction of passwords, tokens and
  ``Authorization`` headers using regex and recursive dictionary filtering.
- API Instrumentation: Helpers for logging REST requests/responses with
  timing and status tracking.
- Contextual Logging: Timestamps, module origin and line numbers on every
  record.

Dependencies:
-------------
- logging: Standard library for output routing.
- re: Used for pattern-based masking of sensitive strings.
"""

import json
import logging
import re
import sys
from pathlib import Path
from typing import Any, Dict, Optional


# Log directory configuration (package -> project root)
PROJECT_ROOT = Path(__file__).parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE_NAME = "bugboard.log"

DEFAULT_LOG_FORMAT = (
    '%(asctime)s - %(name)s - %(levelname)s - '
    '[%(filename)s:%(lineno)d] - %(message)s'
)

# Sensitive field names to mask (substring match on lower-cased keys)
SENSITIVE_FIELDS = {
    'password', 'passwd', 'pwd', 'secret', 'token', 'authorization', 'credentials'
}

# Regex patterns for sensitive data in free text
SENSITIVE_PATTERNS = [
    (re.compile(r'(Bearer\s+[a-zA-Z0-9\-._~+/]+=*)'), 'Bearer ***'),
    (re.compile(r'("?(?:password|token)"?\s*[:=]\s*"?)([^",\s}]+)', re.IGNORECASE), r'\1***'),
]


def _mask_text(text: str) -> str:
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SensitiveDataFilter(logging.Filter):
    """
    Filtering hook that redacts credentials from log records.

    Attached to both file and console handlers. The message and any
    positional or mapping args are scrubbed before the record is formatted.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _mask_text(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = mask_sensitive_data(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    mask_sensitive_data(arg) if isinstance(arg, (dict, str)) else arg
                    for arg in record.args
                )

        return True


def mask_sensitive_data(data: Any, mask_value: str = "***") -> Any:
    """
    Recursively redact sensitive fields from nested data.

    Tokens keep their last four characters so two sessions can still be told
    apart in the logs; passwords are masked entirely.

    Args:
        data: The structure (dict, list, str, ...) to scrub.
        mask_value: The replacement string.

    Returns:
        A copy of the input with sensitive values masked.
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
                if 'token' in key_lower and isinstance(value, str) and len(value) > 8:
                    masked[key] = f"{mask_value}{value[-4:]}"
                else:
                    masked[key] = mask_value
            else:
                masked[key] = mask_sensitive_data(value, mask_value)
        return masked

    elif isinstance(data, (list, tuple)):
        return type(data)(mask_sensitive_data(item, mask_value) for item in data)

    elif isinstance(data, str):
        return _mask_text(data)

    return data


def setup_logging(
    log_level: int = logging.DEBUG,
    console_level: int = logging.INFO,
    log_format: Optional[str] = None,
    log_dir: Optional[Path] = None
) -> Path:
    """
    Initialize application-wide logging.

    - Root logger at DEBUG so handlers decide what to keep.
    - File handler writing detailed logs to ``logs/bugboard.log`` (truncated
      on each run).
    - Console handler with INFO and above.
    - Both handlers carry the ``SensitiveDataFilter``.

    Args:
        log_level: Level for the log file.
        console_level: Level for the terminal.
        log_format: Optional custom format string.
        log_dir: Directory for the log file (defaults to ``LOG_DIR``).

    Returns:
        Path: The log file path.
    """
    log_dir = Path(log_dir) if log_dir else LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    formatter = logging.Formatter(log_format or DEFAULT_LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    file_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(console_handler)

    # urllib3 logs full URLs at DEBUG; keep it quieter than our own records
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.info("=" * 80)
    logging.info(f"BugBoard client started - Log file: {log_file}")
    logging.info("=" * 80)

    return log_file


def shutdown_logging():
    """Flush and close every root handler. Call before application exit."""
    logging.info("Shutting down logging system...")
    for handler in list(logging.root.handlers):
        handler.flush()
        handler.close()


def log_config(config_name: str, config_data: Dict[str, Any], logger: Optional[logging.Logger] = None):
    """
    Log configuration settings with sensitive values masked.

    Args:
        config_name: Name of the configuration being logged
        config_data: Dictionary of configuration settings
        logger: Optional logger instance
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    masked_config = mask_sensitive_data(config_data)

    logger.info(f"Configuration: {config_name}")
    logger.debug(f"{config_name} details: {json.dumps(masked_config, indent=2, default=str)}")


def log_api_request(
    logger: logging.Logger,
    method: str,
    endpoint: str,
    headers: Optional[Dict] = None,
    data: Optional[Any] = None
):
    """
    Log an outgoing API request with masked sensitive data.

    Args:
        logger: Logger instance to use
        method: HTTP method (GET, POST, ...)
        endpoint: Endpoint path
        headers: Request headers
        data: Request body
    """
    logger.info(f"API Request: {method} {endpoint}")

    if headers:
        logger.debug(f"Request headers: {mask_sensitive_data(headers)}")

    if data:
        masked_data = mask_sensitive_data(data)
        logger.debug(f"Request body: {json.dumps(masked_data, indent=2, default=str)}")


def log_api_response(
    logger: logging.Logger,
    status_code: int,
    response_data: Optional[Any] = None,
    elapsed_time: Optional[float] = None
):
    """
    Log an API response with timing information.

    Bodies longer than 1000 characters are truncated.
    """
    timing_info = f" ({elapsed_time:.3f}s)" if elapsed_time else ""
    logger.info(f"API Response: {status_code}{timing_info}")

    if response_data:
        if isinstance(response_data, (bytes, bytearray)):
            logger.debug(f"Response body: <{len(response_data)} bytes>")
            return
        masked_response = mask_sensitive_data(response_data)
        response_str = masked_response if isinstance(masked_response, str) else json.dumps(masked_response, default=str)
        if len(response_str) > 1000:
            response_str = response_str[:1000] + "\n... (truncated)"
        logger.debug(f"Response body: {response_str}")
