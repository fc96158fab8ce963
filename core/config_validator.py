# core/config_validator.py

import re
from typing import List

from core.config import settings
from core.logging_config import logger

_RPC_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


def store_config_errors() -> List[str]:
    """
    Problems that make the document store unusable. Every read, every
    batch commit and every token check goes through Supabase, so these
    are fatal.
    """
    errors = []

    if not settings.SUPABASE_URL:
        errors.append("SUPABASE_URL is not set")
    elif not settings.SUPABASE_URL.startswith(("https://", "http://")):
        errors.append(f"SUPABASE_URL must be an http(s) URL, got {settings.SUPABASE_URL!r}")

    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        errors.append("SUPABASE_SERVICE_ROLE_KEY is not set")

    if not _RPC_NAME.match(settings.DOCUMENT_BATCH_RPC or ""):
        errors.append(f"DOCUMENT_BATCH_RPC is not a valid function name: {settings.DOCUMENT_BATCH_RPC!r}")

    return errors


def workflow_config_errors() -> List[str]:
    errors = []
    if settings.INVITATION_TTL_DAYS < 1:
        errors.append(f"INVITATION_TTL_DAYS must be at least 1, got {settings.INVITATION_TTL_DAYS}")
    return errors


def config_advisories() -> List[str]:
    """Non-fatal: logged at startup."""
    advisories = []

    if not settings.SUPABASE_ANON_KEY:
        advisories.append("SUPABASE_ANON_KEY not set; frontends cannot sign in directly")

    if not settings.BACKEND_CORS_ORIGINS:
        advisories.append("no FRONTEND_ORIGINS configured; browsers will be refused by CORS")
    elif settings.ENV == "production" and any("localhost" in o for o in settings.BACKEND_CORS_ORIGINS):
        advisories.append("localhost is an allowed CORS origin in production")

    return advisories


def validate_config_on_startup():
    """Raises RuntimeError listing every fatal problem; advisories only log."""
    errors = store_config_errors() + workflow_config_errors()
    if errors:
        message = "Invalid configuration: " + "; ".join(errors)
        logger.error(message)
        raise RuntimeError(message)

    for advisory in config_advisories():
        logger.warning(f"Config: {advisory}")

    logger.info("Configuration validated")
