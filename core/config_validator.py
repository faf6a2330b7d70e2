# core/config_validator.py

from typing import List

import pytz

from core.config import settings
from core.logging_config import logger


def validate_required_config() -> List[str]:
    """Missing settings the API cannot serve without."""
    missing = []

    if not settings.SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")

    return missing


def validate_settings_values() -> List[str]:
    """Settings that are present but unusable."""
    problems = []

    if settings.REPORT_TIMEZONE not in pytz.all_timezones_set:
        problems.append(f"REPORT_TIMEZONE '{settings.REPORT_TIMEZONE}' is not a known timezone")

    if not 0 <= settings.WALLET_ARCHIVE_HOUR_UTC <= 23:
        problems.append("WALLET_ARCHIVE_HOUR_UTC must be between 0 and 23")

    if settings.WALLET_ARCHIVE_AFTER_DAYS < 0:
        problems.append("WALLET_ARCHIVE_AFTER_DAYS cannot be negative")

    if settings.BROADCAST_BATCH_SIZE < 1:
        problems.append("BROADCAST_BATCH_SIZE must be at least 1")

    return problems


def validate_optional_config() -> List[str]:
    warnings = []

    if not settings.SUPABASE_ANON_KEY:
        warnings.append("SUPABASE_ANON_KEY (used by the console frontend, not by this API)")

    if settings.REALTIME_ENABLED and not settings.REALTIME_TABLES:
        warnings.append("REALTIME_TABLES (realtime enabled but no tables listed)")

    if settings.SCHEDULER_ENABLED and settings.ENV == "test":
        warnings.append("SCHEDULER_ENABLED under ENV=test")

    return warnings


def validate_config_on_startup():
    """
    Raises RuntimeError when required settings are missing or invalid.
    Under ENV=test missing Supabase credentials only log a warning.
    """
    missing_required = validate_required_config()
    invalid = validate_settings_values()
    missing_optional = validate_optional_config()

    if invalid:
        error_msg = f"Invalid configuration: {'; '.join(invalid)}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    if missing_required:
        error_msg = f"Missing required environment variables: {', '.join(missing_required)}"
        if settings.ENV == "test":
            logger.warning(error_msg)
        else:
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    for warning in missing_optional:
        logger.warning(f"Optional configuration missing: {warning}")

    logger.info("✅ Configuration validation passed")
